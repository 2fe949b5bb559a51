"""Runtime settings, read from the environment (``.env`` is loaded by the app package)."""
import os

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

DEFAULT_PASSWORD = 'ChangeMe123!'

# env var -> fallback
ENV_DEFAULTS = {
    'DATABASE_URL': 'sqlite:///dev.db',
    'JWT_SECRET_KEY': 'dev-secret',
    'SEED_ADMIN_PASSWORD': DEFAULT_PASSWORD,
    'SEED_USER_PASSWORD': DEFAULT_PASSWORD,
    'LOG_LEVEL': 'INFO',
}


def load_settings(overrides=None):
    settings = {key: os.getenv(key, default) for key, default in ENV_DEFAULTS.items()}
    if overrides:
        # tests and scripts pass explicit values
        settings.update(overrides)
    return settings
