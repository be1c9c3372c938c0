from django.apps import AppConfig


class CronConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.cron"
    verbose_name = "Cron"
