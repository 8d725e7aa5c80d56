import os

from celery import Celery

# set the default Django settings module for the 'celery' program.
if os.environ.get("DEBUG", "False") == "True":
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "haggle.settings.dev")
else:
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "haggle.settings.prod")

app = Celery("haggle")

# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")
app.conf.broker_connection_retry_on_startup = True

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()
