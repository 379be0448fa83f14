from rest_framework import serializers

from apps.placeapp.models import Counter, ServiceCategory

from .enums import TicketAction
from .models import Ticket


class ServiceCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ServiceCategory
        fields = ["category_id", "name", "avg_duration", "total_served"]


class CounterSerializer(serializers.ModelSerializer):
    place_name = serializers.CharField(source="place.name", read_only=True)
    categories = serializers.SerializerMethodField()

    class Meta:
        model = Counter
        fields = [
            "id",
            "place",
            "place_name",
            "name",
            "open_time",
            "close_time",
            "lunch_start",
            "lunch_end",
            "is_closed",
            "reported_wait_minutes",
            "wait_reports_count",
            "wait_reported_at",
            "categories",
        ]

    def get_categories(self, obj):
        return ServiceCategorySerializer(obj.categories_or_default(), many=True).data


class TicketSerializer(serializers.ModelSerializer):
    place_name = serializers.CharField(source="place.name", read_only=True)
    counter_name = serializers.CharField(source="counter.name", read_only=True)
    is_walk_in = serializers.BooleanField(read_only=True)

    class Meta:
        model = Ticket
        fields = [
            "id",
            "place",
            "place_name",
            "counter_name",
            "category_id",
            "user_name",
            "ticket_code",
            "status",
            "is_walk_in",
            "created_at",
            "scheduled_time",
            "time_slot_label",
            "serving_started_at",
            "completed_at",
            "service_duration",
        ]
        read_only_fields = fields


class QueueMetricsSerializer(serializers.Serializer):
    people_ahead = serializers.IntegerField()
    estimated_wait = serializers.IntegerField()
    crowd_level = serializers.CharField()
    pace = serializers.IntegerField()
    now_serving = serializers.CharField()


class CrowdMetricsSerializer(serializers.Serializer):
    level = serializers.CharField()
    active_count = serializers.IntegerField()
    daily_capacity = serializers.IntegerField()
    pace = serializers.IntegerField()


class DurationBreakdownSerializer(serializers.Serializer):
    staff = serializers.FloatField()
    system = serializers.FloatField()
    final = serializers.IntegerField()
    samples = serializers.IntegerField()


def ticket_with_metrics(ticket, metrics):
    """Ticket fields merged with its simulated position and wait"""
    data = TicketSerializer(ticket).data
    data.update(QueueMetricsSerializer(metrics).data)
    return data


def ticket_with_turn(ticket, turn):
    """Ticket fields plus its place in line; position and wait are null unless Waiting"""
    data = TicketSerializer(ticket).data
    data["position"] = turn.people_ahead + 1 if turn else None
    data["estimated_wait"] = turn.estimated_wait if turn else None
    return data


class CounterLookupSerializer(serializers.Serializer):
    place_id = serializers.UUIDField()
    counter = serializers.CharField(max_length=100)


class JoinQueueSerializer(CounterLookupSerializer):
    category_id = serializers.CharField(max_length=50, required=False, allow_blank=True)
    scheduled_time = serializers.DateTimeField(required=False, allow_null=True)
    time_slot_label = serializers.CharField(max_length=50, required=False, allow_blank=True)
    user_name = serializers.CharField(max_length=150, required=False, allow_blank=True)


class TicketActionSerializer(CounterLookupSerializer):
    action = serializers.ChoiceField(choices=TicketAction.choices)


class WaitReportSerializer(CounterLookupSerializer):
    minutes = serializers.FloatField(min_value=0, max_value=24 * 60)


class UpcomingTicketSerializer(serializers.Serializer):
    ticket_code = serializers.CharField(source="ticket.ticket_code")
    user_name = serializers.CharField(source="ticket.user_name")
    category_id = serializers.CharField(source="ticket.category_id")
    scheduled_time = serializers.DateTimeField(source="ticket.scheduled_time")
    people_ahead = serializers.IntegerField()
    estimated_wait = serializers.IntegerField()
