# celery_worker.py
from celery.schedules import crontab

from app import create_app
from celery_config import create_celery_app
from logging_config import get_logger

logger = get_logger(__name__)

# Create Celery instance with shared configuration
celery = create_celery_app(__name__)

# The Flask app provides the context tasks run in
flask_app = create_app()


class ContextTask(celery.Task):
    def __call__(self, *args, **kwargs):
        with flask_app.app_context():
            return self.run(*args, **kwargs)


celery.Task = ContextTask

# --- Celery Beat Schedule ---
# Time based labels (Nuevo, Última hora, Respuesta atrasada) change without
# any inbound traffic, so every account is re-evaluated periodically.
celery.conf.beat_schedule = {
    'refresh-auto-labels': {
        'task': 'tasks.label_tasks.refresh_all_account_labels',
        'schedule': crontab(minute='*/15'),
    },
}
celery.conf.timezone = 'UTC'

# Import tasks so they register with Celery
with flask_app.app_context():
    import tasks.label_tasks  # noqa: E402,F401
    logger.info("Registered tasks", tasks=sorted(name for name in celery.tasks if name.startswith('tasks.')))
