import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("placeapp", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Ticket",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("category_id", models.CharField(max_length=50, verbose_name="Category ID")),
                ("user_name", models.CharField(max_length=150, verbose_name="Booking Name")),
                (
                    "ticket_code",
                    models.CharField(max_length=16, unique=True, verbose_name="Ticket Code"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("waiting", "Waiting"),
                            ("serving", "Serving"),
                            ("completed", "Completed"),
                            ("skipped", "Skipped"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        default="waiting",
                        max_length=10,
                        verbose_name="Status",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now, verbose_name="Created At"
                    ),
                ),
                (
                    "scheduled_time",
                    models.DateTimeField(blank=True, null=True, verbose_name="Scheduled Time"),
                ),
                (
                    "time_slot_label",
                    models.CharField(blank=True, max_length=50, verbose_name="Time Slot"),
                ),
                (
                    "serving_started_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="Serving Started At"),
                ),
                (
                    "completed_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="Completed At"),
                ),
                (
                    "service_duration",
                    models.FloatField(
                        blank=True, null=True, verbose_name="Service Duration (minutes)"
                    ),
                ),
                (
                    "counter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="placeapp.counter",
                        verbose_name="Counter",
                    ),
                ),
                (
                    "place",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="placeapp.place",
                        verbose_name="Place",
                    ),
                ),
                (
                    "served_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="served_tickets",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Served By",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tickets",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="User",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ticket",
                "verbose_name_plural": "Tickets",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["counter", "status"], name="ticket_counter_status_idx"),
                    models.Index(fields=["user", "status"], name="ticket_user_status_idx"),
                    models.Index(fields=["scheduled_time"], name="ticket_scheduled_idx"),
                    models.Index(fields=["completed_at"], name="ticket_completed_idx"),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name="ticket",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status", "serving")),
                fields=("counter",),
                name="one_serving_ticket_per_counter",
            ),
        ),
    ]
