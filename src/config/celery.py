"""Celery application for the pharmacy back-office.

Settings are read from Django (``CELERY_`` prefix); each installed app's
``tasks.py`` is autodiscovered.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("pharmacy")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
