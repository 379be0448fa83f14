from django.contrib import admin

from .models import Ticket


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    """Tickets are read-only here; status only changes through the queue engine"""

    list_display = [
        "ticket_code",
        "user_name",
        "place",
        "counter",
        "category_id",
        "status",
        "scheduled_time",
        "created_at",
    ]
    list_filter = ["status", "counter__place"]
    search_fields = ["ticket_code", "user_name", "counter__name", "place__name"]
    date_hierarchy = "created_at"
    readonly_fields = [
        "status",
        "scheduled_time",
        "served_by",
        "serving_started_at",
        "completed_at",
        "service_duration",
    ]
