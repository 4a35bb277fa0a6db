import os
from celery import Celery

# 1. Default Django settings module for the worker process
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.settings')

# 2. Celery app. Start the worker with: celery -A backend worker
app = Celery('backend')

# 3. Read configuration from settings.py (keys prefixed with 'CELERY_')
app.config_from_object('django.conf:settings', namespace='CELERY')

# 4. Discover tasks in installed apps (core, runcrews, ...)
app.autodiscover_tasks()


@app.task(bind=True)
def debug_task(self):
    print(f'Request: {self.request!r}')
