from django.apps import AppConfig


class DeliverablesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.deliverables"
    verbose_name = "Deliverables"
