import os, sys, pytest
# Ensure backend directory is on path so 'bizadmin' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from bizadmin import create_app, get_db
from bizadmin.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import bizadmin.models.tenancy  # noqa: F401
import bizadmin.models.catalog  # noqa: F401


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'DATABASE_URL': 'sqlite+pysqlite:///:memory:', 'TESTING': True})
    with app.app_context():
        Base.metadata.create_all(get_db().get_bind())
    yield app


@pytest.fixture(autouse=True)
def fresh_db(app_instance):
    """Every test starts from empty tables; uniqueness rules make shared state unreliable."""
    session = get_db()
    session.close()
    engine = session.get_bind()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield session
    session.close()


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
