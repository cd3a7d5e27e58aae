# apps/forms/apps.py
from django.apps import AppConfig

class FormsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.forms'
    verbose_name = 'Multi-step Forms'

