from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class PlaceAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.placeapp"
    label = "placeapp"
    verbose_name = _("Places & Counters")
