import environ
from pathlib import Path

import os

from .utils.get_env import env

# Initialize environment variables with django-environ
BASE_DIR = Path(__file__).resolve().parent.parent.parent
environ.Env.read_env(os.path.join(BASE_DIR, ".env"))


# -----------------------------------------------------------------------------
# Basic Config
# -----------------------------------------------------------------------------
SECRET_KEY = env.get("DJANGO_SECRET_KEY", default="django-insecure$@")
# -----------------------------------------------------------------------------
# Time & Language
# -----------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# -----------------------------------------------------------------------------
# Applications configuration
# -----------------------------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # 3rd party apps
    "rest_framework",
    "django_celery_beat",
    # local apps
    "apps.core.apps.CoreConfig",
    "apps.negotiation.apps.NegotiationConfig",
]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------------------------------
# Rest Framework
# -----------------------------------------------------------------------------
REST_FRAMEWORK = {
    "COERCE_DECIMAL_TO_STRING": False,
}

# -----------------------------------------------------------------------------
# Celery
# -----------------------------------------------------------------------------
CELERY_ACCEPT_CONTENT = ["application/json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"

CELERY_TIMEZONE = TIME_ZONE
CELERY_ENABLE_UTC = True
CELERY_BEAT_SCHEDULER = "django_celery_beat.schedulers.DatabaseScheduler"

from .utils.celery_beat_schedule import get_celery_beat_schedule  # noqa: E402

CELERY_BEAT_SCHEDULE = get_celery_beat_schedule()

# Task execution configuration
CELERY_TASK_ALWAYS_EAGER = False  # Set to True for synchronous execution in tests
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_TASK_IGNORE_RESULT = False

# Logging configuration for Celery
CELERY_WORKER_HIJACK_ROOT_LOGGER = False
CELERY_WORKER_LOG_FORMAT = "[%(asctime)s: %(levelname)s/%(processName)s] %(message)s"
CELERY_WORKER_TASK_LOG_FORMAT = "[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s"

from .utils.celery_workers import get_worker_config  # noqa: E402

WORKER_CONFIG = get_worker_config()

CELERY_WORKER_PREFETCH_MULTIPLIER = WORKER_CONFIG["prefetch_multiplier"]
CELERY_WORKER_MAX_TASKS_PER_CHILD = WORKER_CONFIG["max_tasks_per_child"]
CELERY_WORKER_MAX_MEMORY_PER_CHILD = WORKER_CONFIG["max_memory_per_child"]
CELERY_WORKER_CONCURRENCY = WORKER_CONFIG["concurrency"]
CELERY_TASK_ACKS_LATE = True

CELERY_TASK_ROUTES = {
    "apps.negotiation.tasks.*": {
        "queue": "default",
        "routing_key": "default",
    },
}
CELERY_TASK_DEFAULT_QUEUE = "default"

# -----------------------------------------------------------------------------
# Import modular settings
# -----------------------------------------------------------------------------
from .utils.logging import *  # noqa: F403 F401 E402
from .utils.cache_keys import *  # noqa: F403 F401 E402
from .utils.negotiation import *  # noqa: F403 F401 E402
