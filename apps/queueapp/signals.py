import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent with counter=<Counter>, action=<str>, ticket=<Ticket or None>
queue_changed = Signal()


def counter_group_name(counter_id):
    return f"counter_{counter_id}"


def ticket_payload(ticket):
    if ticket is None:
        return None
    return {
        "id": ticket.pk,
        "ticket_code": ticket.ticket_code,
        "status": ticket.status,
        "category_id": ticket.category_id,
    }


def send_counter_update(counter_id, action, ticket=None):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    try:
        async_to_sync(channel_layer.group_send)(
            counter_group_name(counter_id),
            {
                "type": "queue_update",
                "action": action,
                "counter_id": str(counter_id),
                "ticket": ticket,
            },
        )
    except Exception as e:
        logger.error(f"Error broadcasting {action} for counter {counter_id}: {str(e)}")


@receiver(queue_changed)
def broadcast_counter_update(sender, counter, action, ticket=None, **kwargs):
    """Tell listeners of the counter's group to refresh once the change commits"""
    counter_id = counter.pk
    payload = ticket_payload(ticket)
    transaction.on_commit(lambda: send_counter_update(counter_id, action, payload))
