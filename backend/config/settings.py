"""
Django settings for the place intelligence backend.

All deployment specific values are read from environment variables so the same
module serves local development, CI and production.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-only-insecure-secret-key')
DEBUG = _env_bool('DJANGO_DEBUG', default=True)
ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'django.contrib.gis',
    'rest_framework',
    'locations',
    'checkins',
    'recommendations',
    'intelligence',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# Database: a spatial backend is required for the PointField lookups.
# SpatiaLite for development and tests, PostGIS in production
# (DATABASE_ENGINE=django.contrib.gis.db.backends.postgis).
DATABASES = {
    'default': {
        'ENGINE': os.environ.get('DATABASE_ENGINE', 'django.contrib.gis.db.backends.spatialite'),
        'NAME': os.environ.get('DATABASE_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.environ.get('DATABASE_USER', ''),
        'PASSWORD': os.environ.get('DATABASE_PASSWORD', ''),
        'HOST': os.environ.get('DATABASE_HOST', ''),
        'PORT': os.environ.get('DATABASE_PORT', ''),
    }
}

if os.environ.get('SPATIALITE_LIBRARY_PATH'):
    SPATIALITE_LIBRARY_PATH = os.environ['SPATIALITE_LIBRARY_PATH']

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('DJANGO_TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

REST_FRAMEWORK = {
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 50,
}

# In-process caches used by the recommendation engine. Each alias is bounded
# by MAX_ENTRIES and can be pointed at a shared backend (e.g. Redis) in production.
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'default',
    },
    'preferences': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'preferences',
        'TIMEOUT': 7 * 24 * 60 * 60,
        'OPTIONS': {'MAX_ENTRIES': 5000},
    },
    'recommendations': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'recommendations',
        'TIMEOUT': 30 * 60,
        'OPTIONS': {'MAX_ENTRIES': 2000},
    },
    'candidates': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'candidates',
        'TIMEOUT': 10 * 60,
        'OPTIONS': {'MAX_ENTRIES': 500},
    },
}

# Tunables of the scoring and calibration engine
PLACE_INTELLIGENCE = {
    'PREFERENCE_MAX_AGE_DAYS': 7,
    'PREFERENCE_HISTORY_LIMIT': 50,
    'CANDIDATE_RADIUS_KM': 5.0,
    'CANDIDATE_CHECKIN_WINDOW': 200,
    'RECOMMENDATION_LIMIT': 10,
    'BATCH_SIZE': 10,
    'COLLABORATIVE_SAMPLE_SIZE': 100,
    'CALIBRATION_LOOKBACK_HOURS': 6,
    'CALIBRATION_LOOKAHEAD_MINUTES': 20,
    'CALIBRATION_RECENCY_HOURS': 5,
    'CALIBRATION_CANDIDATE_LIMIT': 50,
    'BLEND_HALF_LIFE_DAYS': 3.5,
    'BLEND_WINDOW_DAYS': 7,
    'BLEND_WINDOW_SIZE': 20,
    'AFFINITY_HALF_LIFE_DAYS': 14,
    'TREND_MIN_RECENT_CHECKINS': 2,
    'TREND_DIRECTION_THRESHOLD': 10.0,
    'EXTERNAL_TIMEOUT_SECONDS': 3.2,
}

GOOGLE_PLACES_API_KEY = os.environ.get('GOOGLE_PLACES_API_KEY')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
    },
}
