import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')
app = Celery('teammatch')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Tidy up invitations that outlived expires_at. Reads never depend on it.
app.conf.beat_schedule = {
    'expire-stale-invitations': {
        'task': 'events.tasks.expire_stale_invitations',
        'schedule': crontab(minute=0),  # hourly
    },
}
