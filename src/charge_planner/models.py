from __future__ import annotations

from django.db import models


class ChargingStation(models.Model):
    objects = models.Manager["ChargingStation"]()

    # Open Charge Map POI id
    id = models.BigIntegerField(primary_key=True)
    title = models.CharField(max_length=255, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    town = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=100, blank=True, default="")
    latitude = models.FloatField()
    longitude = models.FloatField()
    number_of_points = models.PositiveIntegerField(null=True, blank=True)
    status_type = models.CharField(max_length=100, null=True, blank=True)
    operator = models.CharField(max_length=255, blank=True, default="")
    connections = models.JSONField(default=list, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("id",)
        indexes = (
            models.Index(fields=["latitude"], name="station_latitude_idx"),
            models.Index(fields=["longitude"], name="station_longitude_idx"),
            models.Index(fields=["latitude", "longitude"], name="station_lat_lng_idx"),
        )

    def __str__(self) -> str:
        return f"{self.title or self.id} ({self.town})"
