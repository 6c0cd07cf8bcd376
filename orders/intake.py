"""
Order intake for staff terminals and QR self-service devices.

Both channels share item validation, server side pricing and persistence.
The QR channel is anonymous, so it additionally goes through the
idempotency and rate limit guards before touching the database.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from businessday.models import BusinessDay
from catalog.reader import list_modifier_groups_for_item, resolve_menu_items
from epos.audit import record_audit
from epos.exceptions import (
    DuplicateError, NotFoundError, PersistenceError, PreconditionError, RateLimitError, ValidationError
)
from epos.money import quantize_money
from epos.numbering import generate_reference
from epos.states import ensure_transition
from tables.models import Session, Table
from tables.services import active_sessions_for_table, get_session
from .guards import QrSubmissionGuard
from .models import Order, OrderItem, OrderItemModifier

logger = logging.getLogger(__name__)

MAX_ID = 2 ** 63 - 1
INVALID_ITEM_MESSAGE = 'Invalid item: each item must have menu_item_id and quantity between 1-{}'


@dataclass
class PricedLine:
    menu_item: object
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    notes: Optional[str] = None
    modifiers: List[tuple] = field(default_factory=list)


def _as_positive_int(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if 0 < value <= MAX_ID else None


def validate_items(items):
    """
    Structural checks on submitted items.

    Returns normalized dicts with menu_item_id, quantity, notes and a list of
    modifier ids. Any submitted price is dropped here.
    """
    max_items = settings.ORDER_MAX_ITEMS
    max_quantity = settings.ORDER_MAX_QUANTITY

    if not isinstance(items, list) or not items:
        raise ValidationError('Invalid request: items must be a non-empty list')
    if len(items) > max_items:
        raise ValidationError(f'Maximum {max_items} items per order')

    normalized = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(INVALID_ITEM_MESSAGE.format(max_quantity))

        menu_item_id = _as_positive_int(item.get('menu_item_id'))
        quantity = _as_positive_int(item.get('quantity'))
        if menu_item_id is None or quantity is None or quantity > max_quantity:
            raise ValidationError(INVALID_ITEM_MESSAGE.format(max_quantity))

        modifiers = item.get('modifiers') or []
        if not isinstance(modifiers, list):
            raise ValidationError('Invalid item: modifiers must be a list of modifier ids')
        modifier_ids = [_as_positive_int(modifier_id) for modifier_id in modifiers]
        if None in modifier_ids:
            raise ValidationError('Invalid item: modifiers must be a list of modifier ids')

        notes = item.get('notes')
        normalized.append({
            'menu_item_id': menu_item_id,
            'quantity': quantity,
            'notes': str(notes).strip() or None if notes else None,
            'modifiers': modifier_ids,
        })
    return normalized


def _price_modifiers(menu_item, modifier_ids):
    """Validate modifier selections against the item's groups and snapshot their prices."""
    groups = list_modifier_groups_for_item(menu_item.id)
    allowed = {}
    for group in groups:
        for modifier in group.modifiers.all():
            allowed[modifier.id] = (modifier, group)

    selected = Counter(modifier_ids)
    unknown = [modifier_id for modifier_id in selected if modifier_id not in allowed]
    if unknown:
        raise ValidationError(
            f"Modifier {unknown[0]} is not available for {menu_item.name}",
            menu_item_id=menu_item.id,
        )

    for group in groups:
        chosen = sum(count for modifier_id, count in selected.items() if allowed[modifier_id][1].id == group.id)
        minimum = max(group.min_selections, 1 if group.is_required else 0)
        if chosen < minimum:
            raise ValidationError(
                f"{menu_item.name}: choose at least {minimum} from {group.name}",
                menu_item_id=menu_item.id,
            )
        if group.max_selections and chosen > group.max_selections:
            raise ValidationError(
                f"{menu_item.name}: choose at most {group.max_selections} from {group.name}",
                menu_item_id=menu_item.id,
            )

    return [(allowed[modifier_id][0], count) for modifier_id, count in selected.items()]


def price_lines(normalized_items):
    """Resolve every item against the catalog and price it with current server side prices."""
    menu = resolve_menu_items(item['menu_item_id'] for item in normalized_items)

    lines = []
    for item in normalized_items:
        menu_item = menu.get(item['menu_item_id'])
        if menu_item is None:
            raise ValidationError(
                f"Menu item {item['menu_item_id']} is not available",
                menu_item_id=item['menu_item_id'],
            )

        modifiers = _price_modifiers(menu_item, item['modifiers'])
        lines.append(PricedLine(
            menu_item=menu_item,
            quantity=item['quantity'],
            unit_price=menu_item.price,
            subtotal=quantize_money(menu_item.price * item['quantity']),
            notes=item['notes'],
            modifiers=modifiers,
        ))
    return lines


def _insert_lines(order, lines):
    for line in lines:
        order_item = OrderItem.objects.create(
            order=order,
            menu_item=line.menu_item,
            quantity=line.quantity,
            unit_price=line.unit_price,
            subtotal=line.subtotal,
            notes=line.notes,
        )
        OrderItemModifier.objects.bulk_create([
            OrderItemModifier(
                order_item=order_item,
                modifier=modifier,
                quantity=count,
                price_adjustment=modifier.price_adjustment,
            )
            for modifier, count in line.modifiers
        ])


def _cancel_failed_order(order):
    try:
        ensure_transition('Order', order.status, Order.Status.CANCELLED, Order.TRANSITIONS)
        order.status = Order.Status.CANCELLED
        order.cancelled_at = timezone.now()
        order.save(update_fields=['status', 'cancelled_at'])
    except DatabaseError:
        logger.critical("Order %s has no items and could not be cancelled; needs manual cleanup",
                        order.order_number, exc_info=True)


def persist_order(session, source, status, lines, actor=None, notes=None, source_ip=None):
    """
    Insert an order and its lines.

    The order row is written first. Lines go in inside a savepoint; if that
    fails the order is kept and marked cancelled so the attempt stays
    visible, and PersistenceError names the step that broke.
    """
    prefix = 'QR' if source == Order.Source.QR else 'ORD'
    now = timezone.now()
    accepted = status == Order.Status.ACCEPTED

    try:
        order = Order.objects.create(
            session=session,
            business_day=session.business_day,
            order_number=generate_reference(prefix),
            source=source,
            status=status,
            notes=notes,
            source_ip=source_ip,
            created_by=actor,
            accepted_by=actor if accepted else None,
            accepted_at=now if accepted else None,
        )
    except DatabaseError:
        logger.exception("Order creation failed at step 'order' for session %s", session.id)
        raise PersistenceError("Failed to create order", step='order')

    try:
        with transaction.atomic():
            _insert_lines(order, lines)
    except DatabaseError:
        logger.exception("Order %s failed at step 'order_items'; marking it cancelled", order.order_number)
        _cancel_failed_order(order)
        raise PersistenceError("Failed to create order items", step='order_items',
                               order_number=order.order_number)

    return order


def _require_session_accepts_orders(session):
    if session.status != Session.Status.ACTIVE:
        raise PreconditionError("Session is closed. Open a new session to take orders.")
    if session.business_day.status != BusinessDay.Status.OPEN:
        raise PreconditionError("The business day for this session is closed")


def create_manual_order(session_id, actor, items, notes=None):
    """Staff entered order. Trusted, so it is created already accepted."""
    session = get_session(session_id)
    _require_session_accepts_orders(session)

    lines = price_lines(validate_items(items))
    order = persist_order(
        session, Order.Source.MANUAL, Order.Status.ACCEPTED, lines,
        actor=actor, notes=(notes or None),
    )
    logger.info("Manual order %s created on session %s by %s", order.order_number, session.id, actor)
    return order


def submit_qr_order(table_number, items, client_request_id=None, source_ip='unknown', guard=None):
    """
    Customer submitted order from a table's QR page.

    Checks run in a fixed order and each failure has its own error: item
    structure, duplicate request id, rate limit, table, session, catalog.
    The order is stored as pending for staff to accept or reject.
    """
    table_number = str(table_number).strip() if table_number is not None else ''
    if not table_number:
        raise ValidationError('Invalid request: tableNumber and items are required')
    normalized = validate_items(items)

    guard = guard or QrSubmissionGuard()
    if client_request_id and not guard.claim_request_id(client_request_id):
        logger.warning("Duplicate QR submission %s for table %s from %s",
                       client_request_id, table_number, source_ip)
        raise DuplicateError()

    if not guard.hit_rate_limit(source_ip, table_number):
        logger.warning("QR rate limit hit for table %s from %s (request %s)",
                       table_number, source_ip, client_request_id)
        raise RateLimitError(retry_after=guard.window_remaining(source_ip, table_number))

    table = Table.objects.filter(table_number=table_number, deleted_at__isnull=True).first()
    if table is None:
        raise NotFoundError('Table not found')
    if not table.is_active:
        raise PreconditionError('Table is not active')
    if not table.qr_enabled:
        raise PreconditionError('QR ordering is not enabled for this table')

    sessions = list(active_sessions_for_table(table).select_related('business_day')[:2])
    if len(sessions) != 1:
        raise PreconditionError('No active session for this table. Please contact staff.')
    session = sessions[0]
    _require_session_accepts_orders(session)

    lines = price_lines(normalized)
    order = persist_order(session, Order.Source.QR, Order.Status.PENDING, lines, source_ip=source_ip)

    record_audit('qr_order_submitted', 'orders', order.id, {
        'order_number': order.order_number,
        'table_number': table_number,
        'items_count': len(lines),
        'ip_address': source_ip,
    })
    return order
