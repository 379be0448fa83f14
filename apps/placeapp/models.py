import uuid

from django.db import models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.queueapp.conf import engine_setting

GENERAL_CATEGORY_ID = "general"


class Place(models.Model):
    """A physical location (bank branch, clinic, office) that owns counters"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    external_place_id = models.CharField(
        _("External Place ID"), max_length=255, unique=True, null=True, blank=True
    )
    name = models.CharField(_("Name"), max_length=255)
    category = models.CharField(_("Category"), max_length=100, blank=True)
    address = models.CharField(_("Address"), max_length=500, blank=True)
    latitude = models.FloatField(_("Latitude"), null=True, blank=True)
    longitude = models.FloatField(_("Longitude"), null=True, blank=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Place")
        verbose_name_plural = _("Places")
        indexes = [
            models.Index(fields=["name"], name="place_name_idx"),
        ]

    def __str__(self):
        return self.name


class Counter(models.Model):
    """Service point inside a place, with its own line of tickets"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    place = models.ForeignKey(
        Place, on_delete=models.CASCADE, related_name="counters", verbose_name=_("Place")
    )
    name = models.CharField(_("Name"), max_length=100)
    display_order = models.PositiveIntegerField(_("Display Order"), default=0)
    open_time = models.TimeField(_("Opens At"), null=True, blank=True)
    close_time = models.TimeField(_("Closes At"), null=True, blank=True)
    lunch_start = models.TimeField(_("Lunch Start"), null=True, blank=True)
    lunch_end = models.TimeField(_("Lunch End"), null=True, blank=True)
    is_closed = models.BooleanField(_("Closed"), default=False)

    # Crowd-sourced "normal" wait, reported by visitors without a ticket
    reported_wait_minutes = models.FloatField(_("Reported Wait (minutes)"), default=0)
    wait_reports_count = models.PositiveIntegerField(_("Wait Reports"), default=0)
    wait_reported_at = models.DateTimeField(_("Last Wait Report"), null=True, blank=True)

    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Counter")
        verbose_name_plural = _("Counters")
        ordering = ["display_order", "name"]
        constraints = [
            models.UniqueConstraint(fields=["place", "name"], name="unique_counter_name_per_place"),
        ]

    def __str__(self):
        return f"{self.place.name} - {self.name}"

    def categories_or_default(self):
        """
        Return the counter's service categories.

        A counter without configured categories behaves as if it had a single
        unsaved "general" category with the default staff duration.
        """
        categories = list(self.categories.all())
        if categories:
            return categories
        return [
            ServiceCategory(
                counter=self,
                category_id=GENERAL_CATEGORY_ID,
                name=str(_("General")),
                avg_duration=engine_setting("DEFAULT_STAFF_MINUTES"),
            )
        ]

    def default_category_id(self):
        return self.categories_or_default()[0].category_id

    def has_category(self, category_id):
        return any(c.category_id == category_id for c in self.categories_or_default())

    def staff_baseline(self, category_id):
        """Staff-declared minutes per transaction for a category (default if absent)."""
        default = engine_setting("DEFAULT_STAFF_MINUTES")
        for category in self.categories_or_default():
            if category.category_id == category_id:
                if category.avg_duration and category.avg_duration > 0:
                    return float(category.avg_duration)
                return float(default)
        return float(default)

    def operating_minutes(self):
        """
        Length of the working day in minutes, lunch break excluded.

        Returns 0 when opening hours are not configured. A close time earlier
        than the open time is read as a shift crossing midnight.
        """
        if self.open_time is None or self.close_time is None:
            return 0

        total = _span_minutes(self.open_time, self.close_time)
        if self.lunch_start is not None and self.lunch_end is not None:
            total -= _span_minutes(self.lunch_start, self.lunch_end)
        return max(0, total)

    def record_wait_report(self, minutes, now=None):
        """Fold one visitor-reported wait into the running average."""
        now = now or timezone.now()
        with transaction.atomic():
            counter = Counter.objects.select_for_update().get(pk=self.pk)
            count = counter.wait_reports_count + 1
            average = (counter.reported_wait_minutes * counter.wait_reports_count + float(minutes)) / count

            counter.reported_wait_minutes = round(average, 2)
            counter.wait_reports_count = count
            counter.wait_reported_at = now
            counter.save(
                update_fields=[
                    "reported_wait_minutes",
                    "wait_reports_count",
                    "wait_reported_at",
                    "updated_at",
                ]
            )

        self.reported_wait_minutes = counter.reported_wait_minutes
        self.wait_reports_count = counter.wait_reports_count
        self.wait_reported_at = counter.wait_reported_at
        return counter


class ServiceCategory(models.Model):
    """A kind of transaction handled at a counter, with a staff-declared duration"""

    counter = models.ForeignKey(
        Counter,
        on_delete=models.CASCADE,
        related_name="categories",
        verbose_name=_("Counter"),
    )
    category_id = models.SlugField(_("Category ID"), max_length=50)
    name = models.CharField(_("Name"), max_length=100)
    avg_duration = models.FloatField(_("Average Duration (minutes)"), default=5)
    total_served = models.PositiveIntegerField(_("Total Served"), default=0)
    display_order = models.PositiveIntegerField(_("Display Order"), default=0)

    class Meta:
        verbose_name = _("Service Category")
        verbose_name_plural = _("Service Categories")
        ordering = ["display_order", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["counter", "category_id"], name="unique_category_per_counter"
            ),
        ]

    def __str__(self):
        return f"{self.counter.name} - {self.name}"


def _span_minutes(start, end):
    start_minutes = start.hour * 60 + start.minute
    end_minutes = end.hour * 60 + end.minute
    if end_minutes < start_minutes:
        end_minutes += 24 * 60
    return end_minutes - start_minutes

