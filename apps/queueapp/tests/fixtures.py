import datetime
import itertools

from django.contrib.auth import get_user_model

from apps.placeapp.models import Counter, Place, ServiceCategory
from apps.queueapp.enums import TicketStatus
from apps.queueapp.models import Ticket

NOW = datetime.datetime(2026, 3, 10, 10, 0, tzinfo=datetime.timezone.utc)

_codes = itertools.count(1)


def minutes(n):
    return datetime.timedelta(minutes=n)


def make_user(username="customer", **extra):
    return get_user_model().objects.create_user(username=username, password="pass", **extra)


def make_counter(name="Teller 1", place=None, categories=(("general", 5),), **extra):
    place = place or Place.objects.create(name="Main Street Bank")
    extra.setdefault("open_time", datetime.time(9, 0))
    extra.setdefault("close_time", datetime.time(17, 0))
    counter = Counter.objects.create(place=place, name=name, **extra)
    for order, (category_id, avg) in enumerate(categories):
        ServiceCategory.objects.create(
            counter=counter,
            category_id=category_id,
            name=category_id.title(),
            avg_duration=avg,
            display_order=order,
        )
    return counter


def make_ticket(counter, user, status=TicketStatus.WAITING, category_id="general", **fields):
    fields.setdefault("created_at", NOW)
    return Ticket.objects.create(
        place=counter.place,
        counter=counter,
        user=user,
        user_name=user.username,
        category_id=category_id,
        ticket_code=f"T{next(_codes):05d}",
        status=status,
        **fields,
    )


def make_history(counter, user, durations, category_id="general"):
    """Completed tickets, the first duration being the most recent"""
    tickets = []
    for age, duration in enumerate(durations):
        finished = NOW - minutes(10 * (age + 1))
        tickets.append(
            make_ticket(
                counter,
                user,
                status=TicketStatus.COMPLETED,
                category_id=category_id,
                created_at=finished - minutes(30),
                serving_started_at=finished - minutes(duration),
                completed_at=finished,
                service_duration=duration,
            )
        )
    return tickets
