import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Place",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                (
                    "external_place_id",
                    models.CharField(
                        blank=True,
                        max_length=255,
                        null=True,
                        unique=True,
                        verbose_name="External Place ID",
                    ),
                ),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("category", models.CharField(blank=True, max_length=100, verbose_name="Category")),
                ("address", models.CharField(blank=True, max_length=500, verbose_name="Address")),
                ("latitude", models.FloatField(blank=True, null=True, verbose_name="Latitude")),
                ("longitude", models.FloatField(blank=True, null=True, verbose_name="Longitude")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
            ],
            options={
                "verbose_name": "Place",
                "verbose_name_plural": "Places",
                "indexes": [models.Index(fields=["name"], name="place_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="Counter",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("name", models.CharField(max_length=100, verbose_name="Name")),
                (
                    "display_order",
                    models.PositiveIntegerField(default=0, verbose_name="Display Order"),
                ),
                ("open_time", models.TimeField(blank=True, null=True, verbose_name="Opens At")),
                ("close_time", models.TimeField(blank=True, null=True, verbose_name="Closes At")),
                ("lunch_start", models.TimeField(blank=True, null=True, verbose_name="Lunch Start")),
                ("lunch_end", models.TimeField(blank=True, null=True, verbose_name="Lunch End")),
                ("is_closed", models.BooleanField(default=False, verbose_name="Closed")),
                (
                    "reported_wait_minutes",
                    models.FloatField(default=0, verbose_name="Reported Wait (minutes)"),
                ),
                (
                    "wait_reports_count",
                    models.PositiveIntegerField(default=0, verbose_name="Wait Reports"),
                ),
                (
                    "wait_reported_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="Last Wait Report"),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                (
                    "place",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="counters",
                        to="placeapp.place",
                        verbose_name="Place",
                    ),
                ),
            ],
            options={
                "verbose_name": "Counter",
                "verbose_name_plural": "Counters",
                "ordering": ["display_order", "name"],
            },
        ),
        migrations.AddConstraint(
            model_name="counter",
            constraint=models.UniqueConstraint(
                fields=("place", "name"), name="unique_counter_name_per_place"
            ),
        ),
        migrations.CreateModel(
            name="ServiceCategory",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("category_id", models.SlugField(verbose_name="Category ID")),
                ("name", models.CharField(max_length=100, verbose_name="Name")),
                (
                    "avg_duration",
                    models.FloatField(default=5, verbose_name="Average Duration (minutes)"),
                ),
                ("total_served", models.PositiveIntegerField(default=0, verbose_name="Total Served")),
                (
                    "display_order",
                    models.PositiveIntegerField(default=0, verbose_name="Display Order"),
                ),
                (
                    "counter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="categories",
                        to="placeapp.counter",
                        verbose_name="Counter",
                    ),
                ),
            ],
            options={
                "verbose_name": "Service Category",
                "verbose_name_plural": "Service Categories",
                "ordering": ["display_order", "id"],
            },
        ),
        migrations.AddConstraint(
            model_name="servicecategory",
            constraint=models.UniqueConstraint(
                fields=("counter", "category_id"), name="unique_category_per_counter"
            ),
        ),
    ]
