"""
Queue app views for the Waitly platform
Thin HTTP layer over the queue engine: joining, ticket status, operator actions
"""

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    CounterLookupSerializer,
    CounterSerializer,
    CrowdMetricsSerializer,
    DurationBreakdownSerializer,
    JoinQueueSerializer,
    QueueMetricsSerializer,
    TicketActionSerializer,
    TicketSerializer,
    UpcomingTicketSerializer,
    WaitReportSerializer,
    ticket_with_metrics,
    ticket_with_turn,
)
from .services.queue_engine import QueueEngine
from .services.ticket_service import TicketService

category_param = openapi.Parameter(
    "category_id",
    openapi.IN_QUERY,
    description="Service category to estimate for (counter default when omitted)",
    type=openapi.TYPE_STRING,
)


class JoinQueueView(APIView):
    """Join a counter as a walk-in, or for a booked time slot"""

    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Join a counter",
        request_body=JoinQueueSerializer,
        responses={201: "Created - ticket with position and estimated wait", 404: "Not Found"},
        tags=["Queue"],
    )
    def post(self, request):
        serializer = JoinQueueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        ticket, metrics = QueueEngine.join(
            request.user,
            data["place_id"],
            data["counter"],
            category_id=data.get("category_id") or None,
            scheduled_time=data.get("scheduled_time"),
            time_slot_label=data.get("time_slot_label", ""),
            user_name=data.get("user_name") or None,
        )
        return Response(ticket_with_metrics(ticket, metrics), status=status.HTTP_201_CREATED)


class TicketStatusView(APIView):
    """Current status of one ticket with its live position and wait"""

    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(operation_summary="Ticket status", tags=["Queue"])
    def get(self, request, ticket_id):
        ticket = TicketService.get_ticket(ticket_id)
        metrics = QueueEngine.ticket_metrics(ticket)
        return Response(ticket_with_metrics(ticket, metrics))


class CancelTicketView(APIView):
    """Cancel one of the caller's waiting tickets"""

    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Cancel a ticket",
        responses={200: "Cancelled", 400: "Not waiting", 403: "Not your ticket"},
        tags=["Queue"],
    )
    def post(self, request, ticket_id):
        ticket = QueueEngine.cancel(ticket_id, request.user)
        return Response(TicketSerializer(ticket).data)


class MyTicketsView(APIView):
    """The caller's active tickets and today's completed ones"""

    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(operation_summary="My tickets", tags=["Queue"])
    def get(self, request):
        results = [
            ticket_with_metrics(ticket, metrics)
            for ticket, metrics in QueueEngine.user_tickets(request.user)
        ]
        return Response(results)


class TicketHistoryView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(operation_summary="Ticket history", tags=["Queue"])
    def get(self, request):
        tickets = QueueEngine.history(request.user)
        return Response(TicketSerializer(tickets, many=True).data)


class CounterStatsView(APIView):
    """What someone joining the counter right now would see"""

    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Counter statistics",
        manual_parameters=[category_param],
        tags=["Queue"],
    )
    def get(self, request, place_id, counter):
        category_id = request.query_params.get("category_id") or None
        stats = QueueEngine.counter_stats(place_id, counter, category_id=category_id)

        return Response(
            {
                "counter": CounterSerializer(stats["counter"]).data,
                "queue": QueueMetricsSerializer(stats["queue"]).data,
                "crowd": CrowdMetricsSerializer(stats["crowd"]).data,
                "estimate": DurationBreakdownSerializer(stats["estimate"]).data,
            }
        )


class WaitReportView(APIView):
    """Report how long the line took without holding a ticket"""

    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(request_body=WaitReportSerializer, tags=["Queue"])
    def post(self, request):
        serializer = WaitReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        counter = QueueEngine.report_wait(data["place_id"], data["counter"], data["minutes"])
        return Response(
            {
                "reported_wait_minutes": counter.reported_wait_minutes,
                "wait_reports_count": counter.wait_reports_count,
            }
        )


# Operator endpoints


class CounterStatusView(APIView):
    """Operator dashboard for one counter"""

    permission_classes = [permissions.IsAdminUser]

    @swagger_auto_schema(operation_summary="Counter dashboard", tags=["Queue Operations"])
    def get(self, request, place_id, counter):
        dashboard = QueueEngine.counter_status(place_id, counter)
        serving = dashboard["serving"]

        return Response(
            {
                "counter": CounterSerializer(dashboard["counter"]).data,
                "now_serving": TicketSerializer(serving).data if serving else None,
                "counts": dashboard["counts"],
                "pace": dashboard["pace"],
                "upcoming": UpcomingTicketSerializer(dashboard["upcoming"], many=True).data,
            }
        )


class CounterTicketsView(APIView):
    """All of today's tickets at a counter, Waiting ones with their position"""

    permission_classes = [permissions.IsAdminUser]

    @swagger_auto_schema(operation_summary="Today's tickets", tags=["Queue Operations"])
    def get(self, request, place_id, counter):
        tickets = [
            ticket_with_turn(ticket, turn)
            for ticket, turn in QueueEngine.todays_tickets(place_id, counter)
        ]
        return Response({"tickets": tickets})


class CallNextView(APIView):
    """Serve the next customer at a counter"""

    permission_classes = [permissions.IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Call next customer",
        request_body=CounterLookupSerializer,
        responses={200: "Ticket now serving, or an empty-queue message", 409: "Conflict"},
        tags=["Queue Operations"],
    )
    def post(self, request):
        serializer = CounterLookupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        ticket = QueueEngine.call_next(data["place_id"], data["counter"], staff_user=request.user)
        if ticket is None:
            return Response({"message": "Queue is empty", "ticket": None})

        return Response(
            {
                "message": f"Now serving {ticket.ticket_code}",
                "ticket": TicketSerializer(ticket).data,
            }
        )


class TicketActionView(APIView):
    """Record the outcome of the ticket being served"""

    permission_classes = [permissions.IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Complete or skip the served ticket",
        request_body=TicketActionSerializer,
        tags=["Queue Operations"],
    )
    def post(self, request):
        serializer = TicketActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        ticket = QueueEngine.record_action(data["place_id"], data["counter"], data["action"])
        return Response(TicketSerializer(ticket).data)
