from django.contrib import admin

from charge_planner.models import ChargingStation


@admin.register(ChargingStation)
class ChargingStationAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "town",
        "operator",
        "status_type",
        "number_of_points",
        "latitude",
        "longitude",
    )
    list_filter = ("status_type", "state")
    search_fields = ("title", "address", "town", "operator")
    ordering = ("town", "title")
