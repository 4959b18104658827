from django.apps import AppConfig


class DjangoVolunteersConfig(AppConfig):
    name = "django_volunteers"
    verbose_name = "Volunteers"
    default_auto_field = "django.db.models.BigAutoField"
