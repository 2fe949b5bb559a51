#!/usr/bin/env python
"""Idempotent bootstrap for the reference data (and optional demo tenants).

Usage:
    python backend/scripts/seed_data.py               # system admin, catalog, whitelist, admin grants
    python backend/scripts/seed_data.py --demo        # plus two demo tenants with roles and users
    python backend/scripts/seed_data.py --show-roles  # print role -> permission counts afterwards
    python backend/scripts/seed_data.py --dry-run     # run everything then rollback (no DB changes)
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.orm import Session

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from bizadmin import create_app, get_db  # type: ignore
from bizadmin.models.authz import Base
from bizadmin.services.seeding import ensure_reference_data, ensure_demo_data, role_permission_counts


def print_role_summary(session):
    rows = role_permission_counts(session)
    if not rows:
        print("[INFO] No roles present.")
        return
    name_w = max(len(r[0]) for r in rows)
    tpl_w = max(len(r[1]) for r in rows)
    print(f"{'Role'.ljust(name_w)} | {'Template'.ljust(tpl_w)} | Count")
    print('-' * (name_w + tpl_w + 12))
    for name, template, cnt in rows:
        print(f"{name.ljust(name_w)} | {template.ljust(tpl_w)} | {str(cnt).rjust(5)}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed tenancy, catalog and RBAC reference data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_data.py\n  with demo tenants: seed_data.py --demo\n  dry run: seed_data.py --dry-run --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--demo', action='store_true', help='Also create demo tenants, subsidiaries, roles and users')
    return p.parse_args(argv)


def _dry_run_engine(url: str):
    engine = create_engine(url, future=True)
    if engine.dialect.name == 'sqlite':
        # pysqlite needs explicit BEGIN for savepoints to nest inside the outer transaction
        @event.listens_for(engine, 'connect')
        def _no_implicit_tx(dbapi_connection, _record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, 'begin')
        def _begin(conn):
            conn.exec_driver_sql('BEGIN')
    return engine


def run(session, args, app):
    summary = ensure_reference_data(session, app.config['SEED_ADMIN_PASSWORD'])
    if args.demo:
        summary.update({f'demo_{k}': v for k, v in ensure_demo_data(session, app.config['SEED_USER_PASSWORD']).items()})
    if args.show_roles:
        print_role_summary(session)
    return summary


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        engine = session.get_bind()
        if not inspect(engine).has_table('tenants'):
            # lightweight fallback when migrations have not run yet; prefer alembic upgrade
            Base.metadata.create_all(engine)
            print('[INFO] Schema created from models (alembic upgrade not run).')

        if not args.dry_run:
            summary = run(session, args, app)
            print(f"[DONE] {', '.join(f'{k}={v}' for k, v in summary.items())}")
            return 0

        # services commit as they go; nest those commits in savepoints of one outer transaction
        engine = _dry_run_engine(app.config['DATABASE_URL'])
        with engine.connect() as connection:
            outer = connection.begin()
            dry = Session(bind=connection, join_transaction_mode='create_savepoint',
                          expire_on_commit=False, autoflush=False)
            try:
                summary = run(dry, args, app)
            finally:
                dry.close()
                outer.rollback()
        print(f"[DRY-RUN] (rolled back) {', '.join(f'{k}={v}' for k, v in summary.items())}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
