import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent after an order moves to printed; kwargs: order, ticket
order_printed = Signal()


@receiver(order_printed)
def log_kitchen_ticket(sender, order, ticket, **kwargs):
    logger.info(
        "Kitchen ticket %s for %s: %d lines",
        ticket['order_number'],
        f"table {ticket['table_number']}" if ticket['table_number'] else ticket['order_type'],
        len(ticket['items']),
    )
