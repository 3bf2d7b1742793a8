"""
Django settings for the seo_toolkit project.

The project hosts the auto-interlinking engine (``interlinks``) next to the
minimal content tables it links together (``cms``). There is no HTTP
surface: the engine is driven in-process by the surrounding CMS, by
lifecycle signals, and by the ``interlink_cron`` management command.

Please consult the Django documentation for additional configuration
options: https://docs.djangoproject.com/en/4.2/ref/settings/
"""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import parse_qs, unquote, urlparse

from django.core.exceptions import ImproperlyConfigured

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-change-me')

DEBUG = os.getenv('DJANGO_DEBUG', 'false').lower() == 'true'

# Application definition
INSTALLED_APPS = [
    'cms',
    'interlinks',
]

# Database
# https://docs.djangoproject.com/en/4.2/ref/settings/#databases


def _database_config_from_url(url: str, *, conn_max_age: int, sqlite_default: Path) -> dict[str, object]:
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()

    if scheme in {'postgres', 'postgresql'}:
        engine = 'django.db.backends.postgresql'
        name = unquote(parsed.path.lstrip('/'))
    elif scheme == 'sqlite':
        engine = 'django.db.backends.sqlite3'
        raw_path = unquote(parsed.path or '').lstrip('/')
        candidate = raw_path or str(sqlite_default)
        name = candidate if os.path.isabs(candidate) else str((BASE_DIR / candidate).resolve())
    else:
        raise ImproperlyConfigured(f'Unsupported DATABASE_URL scheme: {scheme}')

    config: dict[str, object] = {
        'ENGINE': engine,
        'NAME': name,
        'CONN_MAX_AGE': conn_max_age,
    }
    if parsed.username:
        config['USER'] = unquote(parsed.username)
    if parsed.password:
        config['PASSWORD'] = unquote(parsed.password)
    if parsed.hostname:
        config['HOST'] = parsed.hostname
    if parsed.port:
        config['PORT'] = str(parsed.port)

    options = {key: values[-1] for key, values in parse_qs(parsed.query).items() if values}
    if options:
        config['OPTIONS'] = options
    return config


default_sqlite_path = BASE_DIR / 'db.sqlite3'
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': default_sqlite_path,
    }
}

database_url = os.getenv('DATABASE_URL')
if database_url:
    DATABASES['default'] = _database_config_from_url(
        database_url,
        conn_max_age=int(os.getenv('DATABASE_CONN_MAX_AGE', '600')),
        sqlite_default=default_sqlite_path,
    )

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = False

USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Interlinking engine
# Optional YAML file merged over the engine defaults (thresholds, weights, skip tags).
INTERLINKS_CONFIG = os.getenv('INTERLINKS_CONFIG') or None
# Run lifecycle hooks automatically when articles/pages are saved or deleted.
INTERLINKS_LIFECYCLE_SIGNALS = os.getenv('INTERLINKS_LIFECYCLE_SIGNALS', 'true').lower() == 'true'
INTERLINKS_CRON_LIMIT = int(os.getenv('INTERLINKS_CRON_LIMIT', '50'))


log_level = os.getenv('DJANGO_LOG_LEVEL', 'INFO').upper()
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'plain': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'plain',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': log_level,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': log_level,
            'propagate': False,
        },
        'interlinks': {
            'handlers': ['console'],
            'level': os.getenv('INTERLINKS_LOG_LEVEL', log_level).upper(),
            'propagate': False,
        },
    },
}
