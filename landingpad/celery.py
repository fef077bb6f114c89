import os
from celery import Celery


# Set default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'landingpad.settings')

app = Celery('landingpad')

# Load task modules from all registered Django apps
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()


# For local runs:
# :: First terminal (worker)
# celery -A landingpad worker -l INFO --pool=solo

# :: Second terminal (beat)
# celery -A landingpad beat -l INFO --scheduler django_celery_beat.schedulers:DatabaseScheduler
