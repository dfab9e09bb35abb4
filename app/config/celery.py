"""
Celery configuration for the payment reconciliation engine.

Webhooks and callbacks are reconciled synchronously inside the request, so
Celery carries only operator-triggered work: replaying an audited
notification (payments.tasks.replay_audit_log).

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps.

Usage:
    from payments.tasks import replay_audit_log

    replay_audit_log.delay(str(audit_log.id))

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("payrecon")

# Load configuration from Django settings
# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
