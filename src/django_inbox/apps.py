from django.apps import AppConfig


class DjangoInboxConfig(AppConfig):
    name = "django_inbox"
    verbose_name = "Inbox"
    default_auto_field = "django.db.models.BigAutoField"
