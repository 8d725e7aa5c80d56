import os

from celery.schedules import crontab

# Celery Beat Schedule for the negotiation engine
CELERY_BEAT_SCHEDULE = {
    # ============================================
    # SESSION / CREDENTIAL EXPIRY
    # ============================================
    # Expire idle pending sessions and unredeemed credentials every 10 minutes
    "expire-stale-negotiations": {
        "task": "apps.negotiation.tasks.expire_stale_negotiations",
        "schedule": crontab(minute="*/10"),
        "options": {
            "expires": 600,  # Task expires after 10 minutes
            "retry": True,
            "retry_policy": {
                "max_retries": 3,
                "interval_start": 10,
                "interval_step": 10,
                "interval_max": 60,
            },
        },
    },
}

# Development configuration (more frequent)
CELERY_BEAT_SCHEDULE_DEV = {
    "expire-stale-negotiations-dev": {
        "task": "apps.negotiation.tasks.expire_stale_negotiations",
        "schedule": crontab(minute="*/2"),
        "options": {
            "expires": 120,
        },
    },
}


def get_celery_beat_schedule():
    """
    Get the appropriate Celery Beat schedule based on environment.

    Returns:
        dict: The appropriate schedule configuration
    """
    env = os.environ.get("DJANGO_ENV", "production").lower()

    if env in ("test", "testing"):
        return {}
    elif env in ("development", "dev"):
        return CELERY_BEAT_SCHEDULE_DEV
    return CELERY_BEAT_SCHEDULE
