import pytest
from hypothesis import given, settings, HealthCheck, strategies as st
from bizadmin.errors import ValidationError
from bizadmin.services.normalization import NameKind, normalize, require_name, same_name, fold

# the autouse database fixture is irrelevant to these pure functions
relaxed = settings(suppress_health_check=[HealthCheck.function_scoped_fixture], max_examples=200)


@relaxed
@given(st.text(), st.sampled_from(list(NameKind)))
def test_normalize_is_idempotent(raw, kind):
    once = normalize(raw, kind)
    assert normalize(once, kind) == once


@relaxed
@given(st.text(), st.sampled_from(list(NameKind)))
def test_normalize_output_alphabet(raw, kind):
    out = normalize(raw, kind)
    allowed = {
        NameKind.CATALOG: set('abcdefghijklmnopqrstuvwxyz'),
        NameKind.ROLE: set('abcdefghijklmnopqrstuvwxyz.'),
        NameKind.TENANT: set('abcdefghijklmnopqrstuvwxyz0123456789.,- '),
        NameKind.USERNAME: set('abcdefghijklmnopqrstuvwxyz0123456789.'),
    }[kind]
    assert set(out) <= allowed
    assert out == out.strip()
    assert '  ' not in out


@pytest.mark.parametrize('a,b,kind', [
    ('ALMACÉN', 'almacen', NameKind.CATALOG),
    ('Compañía', 'compania', NameKind.CATALOG),
    ('Usuarios y Roles', 'usuariosyroles', NameKind.CATALOG),
    ('Super.Admin', 'super.admin', NameKind.ROLE),
    ('  Acme   Corp ', 'acme corp', NameKind.TENANT),
    ('PERU - JUGUETERÍA', 'peru - jugueteria', NameKind.TENANT),
])
def test_equivalent_names(a, b, kind):
    assert normalize(a, kind) == b
    assert same_name(a, b, kind)


def test_fold_keeps_non_letters():
    assert fold(' Ñandú-42 ') == 'nandu-42'


def test_require_name_returns_display_and_key():
    assert require_name('  Ventas ', NameKind.CATALOG) == ('Ventas', 'ventas')


@pytest.mark.parametrize('raw', [None, '', '   ', 123])
def test_require_name_missing(raw):
    with pytest.raises(ValidationError) as exc:
        require_name(raw, NameKind.CATALOG)
    assert exc.value.fields == {'name': 'required'}


def test_require_name_nothing_left_after_normalizing():
    with pytest.raises(ValidationError) as exc:
        require_name('1234 !!', NameKind.CATALOG)
    assert exc.value.fields == {'name': 'invalid'}
