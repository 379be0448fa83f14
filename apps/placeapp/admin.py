from django.contrib import admin

from .models import Counter, Place, ServiceCategory


class CounterInline(admin.TabularInline):
    model = Counter
    extra = 0
    fields = ["name", "display_order", "open_time", "close_time", "is_closed"]


class ServiceCategoryInline(admin.TabularInline):
    """Service categories and their staff-declared durations"""

    model = ServiceCategory
    extra = 0
    readonly_fields = ["total_served"]


@admin.register(Place)
class PlaceAdmin(admin.ModelAdmin):
    list_display = ["name", "category", "address", "created_at"]
    search_fields = ["name", "address", "external_place_id"]
    inlines = [CounterInline]


@admin.register(Counter)
class CounterAdmin(admin.ModelAdmin):
    list_display = ["name", "place", "open_time", "close_time", "is_closed", "reported_wait_minutes"]
    list_filter = ["is_closed"]
    search_fields = ["name", "place__name"]
    readonly_fields = ["reported_wait_minutes", "wait_reports_count", "wait_reported_at"]
    inlines = [ServiceCategoryInline]
