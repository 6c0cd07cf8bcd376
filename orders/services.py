import logging

from django.db import transaction
from django.utils import timezone

from businessday.services import current_business_day
from epos.audit import record_audit
from epos.exceptions import NotFoundError
from epos.states import ensure_transition
from .models import Order

logger = logging.getLogger(__name__)


def get_order(order_id):
    order = (
        Order.objects.select_related('session__table')
        .prefetch_related('items__menu_item', 'items__modifiers__modifier')
        .filter(id=order_id)
        .first()
    )
    if order is None:
        raise NotFoundError("Order not found")
    return order


def lock_order(order_id):
    """Fetch an order row for update. Call inside transaction.atomic()."""
    order = Order.objects.select_for_update().filter(id=order_id).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def accept_order(order_id, actor):
    with transaction.atomic():
        order = lock_order(order_id)
        ensure_transition('Order', order.status, Order.Status.ACCEPTED, Order.TRANSITIONS)
        order.status = Order.Status.ACCEPTED
        order.accepted_by = actor
        order.accepted_at = timezone.now()
        order.save(update_fields=['status', 'accepted_by', 'accepted_at'])
        record_audit('order_accepted', 'orders', order.id, {'order_number': order.order_number}, actor=actor)
    return order


def reject_order(order_id, actor, reason=None):
    with transaction.atomic():
        order = lock_order(order_id)
        ensure_transition('Order', order.status, Order.Status.REJECTED, Order.TRANSITIONS)
        order.status = Order.Status.REJECTED
        order.rejected_by = actor
        order.rejected_at = timezone.now()
        order.rejection_reason = reason or None
        order.save(update_fields=['status', 'rejected_by', 'rejected_at', 'rejection_reason'])
        record_audit('order_rejected', 'orders', order.id, {
            'order_number': order.order_number,
            'reason': order.rejection_reason,
        }, actor=actor)
    return order


def list_pending_qr_orders():
    """Pending QR orders for the open business day, newest first."""
    business_day = current_business_day()
    if business_day is None:
        return Order.objects.none()
    return (
        Order.objects.filter(business_day=business_day, status=Order.Status.PENDING, source=Order.Source.QR)
        .select_related('session__table')
        .prefetch_related('items__menu_item', 'items__modifiers__modifier')
        .order_by('-created_at', '-id')
    )
