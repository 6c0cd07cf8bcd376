import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Exists, OuterRef, Q, Subquery
from django.utils import timezone

from businessday.services import require_open_business_day
from epos.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from epos.money import quantize_money, to_decimal
from epos.states import ensure_transition
from .models import Table, Session

logger = logging.getLogger(__name__)


def get_table(table_id):
    table = Table.objects.filter(id=table_id, deleted_at__isnull=True).first()
    if table is None:
        raise NotFoundError("Table not found")
    return table


def get_session(session_id):
    session = Session.objects.select_related('table', 'business_day').filter(id=session_id).first()
    if session is None:
        raise NotFoundError("Session not found")
    return session


def lock_session(session_id):
    """
    Fetch a session row for update. Call inside transaction.atomic().

    Every write to a session's bill takes this lock first, then the bill row.
    """
    session = Session.objects.select_for_update().filter(id=session_id).first()
    if session is None:
        raise NotFoundError("Session not found")
    return session


def active_sessions_for_table(table):
    return Session.objects.filter(table=table, status=Session.Status.ACTIVE)


def _clean_text(value):
    value = (value or '').strip()
    return value or None


def open_dine_in(table_id, guest_count, actor):
    business_day = require_open_business_day()

    try:
        guest_count = int(guest_count)
    except (TypeError, ValueError):
        raise ValidationError("guest_count must be a positive integer")
    if guest_count < 1:
        raise ValidationError("guest_count must be a positive integer")

    table = get_table(table_id)
    if not table.is_active:
        raise PreconditionError(f"Table {table.table_number} is not active")

    if active_sessions_for_table(table).exists():
        raise ConflictError(f"Table {table.table_number} already has an active session")

    # Two terminals can pass the check above together; the partial unique
    # index lets exactly one insert through.
    try:
        with transaction.atomic():
            session = Session.objects.create(
                business_day=business_day,
                table=table,
                order_type=Session.OrderType.DINE_IN,
                guest_count=guest_count,
                created_by=actor,
            )
    except IntegrityError:
        logger.warning("Concurrent open on table %s rejected", table.table_number)
        raise ConflictError(f"Table {table.table_number} already has an active session")

    logger.info("Opened dine-in session %s on table %s", session.id, table.table_number)
    return session


def open_takeaway(actor, customer_name=None, customer_phone=None):
    business_day = require_open_business_day()
    session = Session.objects.create(
        business_day=business_day,
        order_type=Session.OrderType.TAKEAWAY,
        customer_name=_clean_text(customer_name),
        customer_phone=_clean_text(customer_phone),
        created_by=actor,
    )
    logger.info("Opened takeaway session %s", session.id)
    return session


def open_delivery(actor, customer_name, customer_phone, customer_address, delivery_fee=None):
    business_day = require_open_business_day()

    customer = {
        'customer_name': _clean_text(customer_name),
        'customer_phone': _clean_text(customer_phone),
        'customer_address': _clean_text(customer_address),
    }
    missing = [field for field, value in customer.items() if value is None]
    if missing:
        raise ValidationError(
            "Delivery orders need the customer's name, phone and address",
            fields=missing,
        )

    if delivery_fee is None:
        delivery_fee = settings.POS_DEFAULT_DELIVERY_FEE
    delivery_fee = quantize_money(to_decimal(delivery_fee, 'delivery_fee'))
    if delivery_fee < 0:
        raise ValidationError("delivery_fee cannot be negative")

    session = Session.objects.create(
        business_day=business_day,
        order_type=Session.OrderType.DELIVERY,
        delivery_fee=delivery_fee,
        created_by=actor,
        **customer
    )
    logger.info("Opened delivery session %s", session.id)
    return session


def toggle_qr(table_id):
    """Flip QR ordering for a table. Existing sessions and orders are untouched."""
    with transaction.atomic():
        table = Table.objects.select_for_update().filter(id=table_id, deleted_at__isnull=True).first()
        if table is None:
            raise NotFoundError("Table not found")
        table.qr_enabled = not table.qr_enabled
        table.save(update_fields=['qr_enabled'])
    logger.info("QR ordering %s for table %s", 'enabled' if table.qr_enabled else 'disabled', table.table_number)
    return table


def table_board():
    """
    Tables with occupancy derived from active sessions.

    ``occupied`` is computed on every call rather than stored on the table.
    """
    active = Session.objects.filter(table=OuterRef('pk'), status=Session.Status.ACTIVE)
    return (
        Table.objects.filter(deleted_at__isnull=True, is_active=True)
        .annotate(
            occupied=Exists(active),
            active_session_id=Subquery(active.values('id')[:1]),
            pending_orders=Count(
                'sessions__orders',
                filter=Q(sessions__status=Session.Status.ACTIVE, sessions__orders__status='pending'),
            ),
        )
        .order_by('table_number')
    )


def close_session(session):
    ensure_transition('Session', session.status, Session.Status.CLOSED, Session.TRANSITIONS)
    session.status = Session.Status.CLOSED
    session.closed_at = timezone.now()
    session.save(update_fields=['status', 'closed_at'])
    return session
