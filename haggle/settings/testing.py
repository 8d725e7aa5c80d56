import os

os.environ.setdefault("DJANGO_ENV", "testing")

from .base import *  # noqa: F401, F403, E402

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "haggle-tests",
    }
}

# Override Celery settings for testing
CELERY_TASK_ALWAYS_EAGER = True  # Synchronous execution for tests
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

# Disable beat scheduler for tests
CELERY_BEAT_SCHEDULE = {}

# Signature checks run against known secrets in tests
WEBHOOK_SECRETS = {
    "shopify": "shopify-test-secret",
    "woocommerce": "woo-test-secret",
}
