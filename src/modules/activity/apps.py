from django.apps import AppConfig


class ActivityConfig(AppConfig):
    name = "modules.activity"
    label = "activity"
    verbose_name = "Activity log"
