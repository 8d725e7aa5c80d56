import os
import sys
from pathlib import Path

# ─────────────────────────────────────────────────────
# Create a "logs" directory next to this settings file
# ─────────────────────────────────────────────────────
LOG_DIR = Path(__file__).resolve().parent / "logs"

NEGOTIATION_LOG_PATH = LOG_DIR / "negotiation_performance.log"
WEBHOOK_LOG_PATH = LOG_DIR / "webhooks.log"
ERROR_LOG_PATH = LOG_DIR / "error.log"
INFO_LOG_PATH = LOG_DIR / "info.log"

if not os.environ.get("GITHUB_ACTIONS"):
    os.makedirs(LOG_DIR, exist_ok=True)

# ─────────────────────────────────────────────────────
# base logging config
# ─────────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "console": {"format": "%(name)-12s %(levelname)-8s %(message)s"},
        "file": {"format": "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"},
        "verbose": {
            "format": "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": sys.stdout,
        },
        "info_file": {
            "level": "INFO",
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "file",
            "filename": str(INFO_LOG_PATH),
            "maxBytes": 1_000_000,
            "backupCount": 10,
        },
        "error_file": {
            "level": "ERROR",
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "file",
            "filename": str(ERROR_LOG_PATH),
            "maxBytes": 1_000_000,
            "backupCount": 10,
        },
        "negotiation_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(NEGOTIATION_LOG_PATH),
            "formatter": "file",
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "level": "INFO",
        },
        "webhook_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(WEBHOOK_LOG_PATH),
            "formatter": "verbose",
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "level": "INFO",
        },
    },
    "loggers": {
        # root logger
        "": {
            "level": "INFO",
            "handlers": ["console", "info_file", "error_file"],
            "propagate": True,
        },
        "negotiation_performance": {
            "handlers": ["negotiation_file"],
            "level": "INFO",
            "propagate": False,
        },
        "webhooks": {
            "handlers": ["webhook_file", "error_file"],
            "level": "INFO",
            "propagate": False,
        },
        "celery": {
            "handlers": ["console", "error_file"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

# If running under CI (e.g. GitHub Actions), drop all file handlers
if os.environ.get("GITHUB_ACTIONS"):
    for h in list(LOGGING["handlers"].keys()):
        if h.endswith("_file"):
            LOGGING["handlers"].pop(h, None)

    for logger_config in LOGGING["loggers"].values():
        logger_config["handlers"] = ["console"]
