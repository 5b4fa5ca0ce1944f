"""
Celery application for the wallet service.

Tasks are discovered from the installed Django apps and configured from
the CELERY_* entries of the Django settings.
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'wallet_service.settings')

app = Celery('wallet_service')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
