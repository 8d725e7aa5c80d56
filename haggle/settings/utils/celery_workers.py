import os
import multiprocessing

CPU_CORES = multiprocessing.cpu_count()

# Worker configuration based on environment
CELERY_WORKER_CONFIGS = {
    "development": {
        "concurrency": 2,
        "prefetch_multiplier": 1,
        "max_tasks_per_child": 1000,
        "max_memory_per_child": 200000,  # 200MB in KB
    },
    "production": {
        "concurrency": min(4, CPU_CORES),
        "prefetch_multiplier": 4,
        "max_tasks_per_child": 5000,
        "max_memory_per_child": 500000,  # 500MB in KB
    },
}


def get_worker_config():
    """Get worker configuration based on environment"""
    env = os.environ.get("CELERY_WORKER_ENV", "development").lower()
    return CELERY_WORKER_CONFIGS.get(env, CELERY_WORKER_CONFIGS["development"])
