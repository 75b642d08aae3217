"""
Settings for the test suite.

SQLite is file-backed so worker threads share the database, and transactions
start IMMEDIATE so concurrent writers queue on the lock instead of failing.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'citizenly-test.sqlite3',
        'OPTIONS': {
            'timeout': 20,
            'transaction_mode': 'IMMEDIATE',
        },
        'TEST': {
            'NAME': BASE_DIR / 'citizenly-test.sqlite3',
        },
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    'DEFAULT_THROTTLE_CLASSES': [],
}

SUPABASE_URL = 'https://citizenly-test.supabase.co'
SUPABASE_ANON_KEY = 'test-anon-key'
SUPABASE_SERVICE_KEY = 'test-service-key'
SUPABASE_JWT_SECRET = 'test-jwt-secret-with-enough-length-for-hs256'

REGISTRATION = {
    'VISIBILITY_MAX_ATTEMPTS': 5,
    'VISIBILITY_INITIAL_DELAY': 0.001,
    'VISIBILITY_BACKOFF_MULTIPLIER': 2.0,
    'VISIBILITY_MAX_DELAY': 0.01,
    'VISIBILITY_JITTER': 0.0,
    'REQUEST_DEADLINE': 5.0,
    'ORPHAN_AGE_HOURS': 24,
}
