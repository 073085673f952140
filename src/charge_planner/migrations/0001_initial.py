from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ChargingStation",
            fields=[
                ("id", models.BigIntegerField(primary_key=True, serialize=False)),
                ("title", models.CharField(blank=True, default="", max_length=255)),
                ("address", models.CharField(blank=True, default="", max_length=255)),
                ("town", models.CharField(blank=True, default="", max_length=100)),
                ("state", models.CharField(blank=True, default="", max_length=100)),
                ("latitude", models.FloatField()),
                ("longitude", models.FloatField()),
                ("number_of_points", models.PositiveIntegerField(blank=True, null=True)),
                ("status_type", models.CharField(blank=True, max_length=100, null=True)),
                ("operator", models.CharField(blank=True, default="", max_length=255)),
                ("connections", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("id",),
                "indexes": [
                    models.Index(fields=["latitude"], name="station_latitude_idx"),
                    models.Index(fields=["longitude"], name="station_longitude_idx"),
                    models.Index(
                        fields=["latitude", "longitude"], name="station_lat_lng_idx"
                    ),
                ],
            },
        ),
    ]
