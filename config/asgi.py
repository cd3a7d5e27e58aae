# config/asgi.py
import os
from django.core.asgi import get_asgi_application
from .settings.base import DEBUG

if DEBUG:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')
else:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.production')

# <resource>/stream/ responses are streamed by Django's own ASGI handler
application = get_asgi_application()
