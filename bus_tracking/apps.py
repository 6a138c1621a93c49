from django.apps import AppConfig


class BusTrackingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "bus_tracking"
    verbose_name = "Bus tracking"

    def ready(self):
        from .broadcast import BroadcastHub

        # One hub per process; it is started lazily by the first stream client.
        self.hub = BroadcastHub.from_settings()


def get_hub():
    from django.apps import apps

    return apps.get_app_config("bus_tracking").hub
