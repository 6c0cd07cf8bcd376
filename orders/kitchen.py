"""
Kitchen routing.

Printing an order is the point where the kitchen commits to it, and the
point from which its items count on the session's bill.
"""
import logging

from django.db import transaction
from django.utils import timezone

from billing.services import recompute_bill
from epos.exceptions import NotFoundError
from epos.states import ensure_transition
from tables.services import lock_session
from .models import Order
from .services import get_order, lock_order
from .signals import order_printed

logger = logging.getLogger(__name__)


def build_kitchen_ticket(order):
    session = order.session
    return {
        'order_number': order.order_number,
        'table_number': session.table.table_number if session.table_id else None,
        'order_type': session.order_type,
        'source': order.source,
        'printed_at': order.printed_at,
        'notes': order.notes,
        'items': [
            {
                'quantity': item.quantity,
                'item_name': item.menu_item.name,
                'modifiers': [line.modifier.name for line in item.modifiers.all()],
                'notes': item.notes,
            }
            for item in order.items.all()
        ],
    }


def print_order(order_id, actor):
    """
    Send an accepted order to the kitchen.

    Returns the order and the kitchen ticket that was dispatched.
    """
    with transaction.atomic():
        # Lock order: session, then order, then bill
        session_id = Order.objects.filter(id=order_id).values_list('session_id', flat=True).first()
        if session_id is None:
            raise NotFoundError("Order not found")
        lock_session(session_id)
        order = lock_order(order_id)
        ensure_transition('Order', order.status, Order.Status.PRINTED, Order.TRANSITIONS)
        order.status = Order.Status.PRINTED
        order.printed_at = timezone.now()
        order.printed_by = actor
        order.save(update_fields=['status', 'printed_at', 'printed_by'])
        recompute_bill(order.session_id)

    order = get_order(order.id)
    ticket = build_kitchen_ticket(order)
    order_printed.send(sender=Order, order=order, ticket=ticket)
    logger.info("Order %s printed by %s", order.order_number, actor)
    return order, ticket
