"""
ASGI config for the payment reconciliation engine.

Exposes the ASGI callable as a module-level variable named `application`.
All traffic is plain HTTP (gateway webhooks, browser callbacks and the
admin API), served by Django's ASGI handler.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

# Set the default Django settings module for the ASGI application
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
