from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
from .config.settings import load_settings

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _make_engine(db_url: str):
    if db_url.endswith(':memory:'):
        # one shared connection, otherwise every session sees its own empty database
        return create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(db_url, echo=False, future=True, pool_pre_ping=True)


def _register_error_handlers(app: Flask):
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            error = {'status': e.code, 'title': e.name, 'detail': e.description}
            # ValidationError carries per-field messages
            if getattr(e, 'fields', None):
                error['fields'] = e.fields
            if e.code >= 500:
                app.logger.error('%s %s: %s', e.code, e.name, e.description)
            return {'error': error}, e.code
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)
    app.config.update(load_settings(config))
    app.logger.setLevel(app.config['LOG_LEVEL'])

    db_engine = _make_engine(app.config['DATABASE_URL'])
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    # models must be registered before the first query
    from .models import authz, tenancy, catalog  # noqa: F401
    from .routes.auth import auth_bp
    from .routes.catalog import cat_bp
    from .routes.tenancy import tenancy_bp
    from .routes.rbac import rbac_bp
    from .routes.iam import iam_bp
    for bp, prefix in ((auth_bp, '/auth'), (cat_bp, '/catalog'), (tenancy_bp, '/tenancy'),
                       (rbac_bp, '/rbac'), (iam_bp, '/iam')):
        app.register_blueprint(bp, url_prefix=prefix)

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    _register_error_handlers(app)
    app.logger.info('bizadmin app created (db=%s)', db_engine.url.render_as_string(hide_password=True))
    return app


def get_db():
    return SessionLocal()
