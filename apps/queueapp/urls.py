from django.urls import path

from . import views

app_name = "queueapp"

urlpatterns = [
    # Customer side
    path("join/", views.JoinQueueView.as_view(), name="join-queue"),
    path("tickets/<int:ticket_id>/", views.TicketStatusView.as_view(), name="ticket-status"),
    path(
        "tickets/<int:ticket_id>/cancel/",
        views.CancelTicketView.as_view(),
        name="cancel-ticket",
    ),
    path("my-tickets/", views.MyTicketsView.as_view(), name="my-tickets"),
    path("history/", views.TicketHistoryView.as_view(), name="ticket-history"),
    path(
        "stats/<uuid:place_id>/<str:counter>/",
        views.CounterStatsView.as_view(),
        name="counter-stats",
    ),
    path("wait-report/", views.WaitReportView.as_view(), name="wait-report"),
    # Operators
    path(
        "counter-status/<uuid:place_id>/<str:counter>/",
        views.CounterStatusView.as_view(),
        name="counter-status",
    ),
    path(
        "counter-tickets/<uuid:place_id>/<str:counter>/",
        views.CounterTicketsView.as_view(),
        name="counter-tickets",
    ),
    path("call-next/", views.CallNextView.as_view(), name="call-next"),
    path("action/", views.TicketActionView.as_view(), name="ticket-action"),
]
