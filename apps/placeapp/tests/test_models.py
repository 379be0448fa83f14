import datetime

from django.test import TestCase, override_settings

from apps.placeapp.models import GENERAL_CATEGORY_ID, Counter, Place, ServiceCategory


class CounterTest(TestCase):
    def setUp(self):
        self.place = Place.objects.create(name="City Clinic")
        self.counter = Counter.objects.create(
            place=self.place,
            name="Reception",
            open_time=datetime.time(9, 0),
            close_time=datetime.time(17, 0),
        )

    def test_counter_without_categories_has_general(self):
        """A bare counter behaves like one 5-minute general category"""
        categories = self.counter.categories_or_default()

        self.assertEqual(len(categories), 1)
        self.assertEqual(categories[0].category_id, GENERAL_CATEGORY_ID)
        self.assertEqual(self.counter.default_category_id(), GENERAL_CATEGORY_ID)
        self.assertEqual(self.counter.staff_baseline(GENERAL_CATEGORY_ID), 5.0)
        self.assertFalse(ServiceCategory.objects.exists())

    @override_settings(QUEUE_ENGINE={"DEFAULT_STAFF_MINUTES": 7})
    def test_general_category_uses_configured_default(self):
        self.assertEqual(self.counter.staff_baseline(GENERAL_CATEGORY_ID), 7.0)

    def test_configured_categories(self):
        ServiceCategory.objects.create(
            counter=self.counter, category_id="vaccines", name="Vaccines", avg_duration=12
        )
        ServiceCategory.objects.create(
            counter=self.counter,
            category_id="results",
            name="Results",
            avg_duration=0,
            display_order=1,
        )

        self.assertEqual(self.counter.default_category_id(), "vaccines")
        self.assertTrue(self.counter.has_category("results"))
        self.assertFalse(self.counter.has_category(GENERAL_CATEGORY_ID))
        self.assertEqual(self.counter.staff_baseline("vaccines"), 12.0)
        # Missing or non-positive durations fall back to the default
        self.assertEqual(self.counter.staff_baseline("results"), 5.0)
        self.assertEqual(self.counter.staff_baseline("unknown"), 5.0)

    def test_operating_minutes(self):
        self.assertEqual(self.counter.operating_minutes(), 480)

        self.counter.lunch_start = datetime.time(12, 0)
        self.counter.lunch_end = datetime.time(13, 0)
        self.assertEqual(self.counter.operating_minutes(), 420)

    def test_operating_minutes_across_midnight(self):
        self.counter.open_time = datetime.time(22, 0)
        self.counter.close_time = datetime.time(2, 0)
        self.assertEqual(self.counter.operating_minutes(), 240)

    def test_operating_minutes_without_hours(self):
        self.counter.open_time = None
        self.assertEqual(self.counter.operating_minutes(), 0)

    def test_record_wait_report_keeps_running_average(self):
        now = datetime.datetime(2026, 3, 10, 10, 0, tzinfo=datetime.timezone.utc)

        self.counter.record_wait_report(10, now=now)
        self.counter.record_wait_report(20, now=now)
        self.counter.record_wait_report(30, now=now)

        self.counter.refresh_from_db()
        self.assertEqual(self.counter.reported_wait_minutes, 20)
        self.assertEqual(self.counter.wait_reports_count, 3)
        self.assertEqual(self.counter.wait_reported_at, now)
