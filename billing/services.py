import logging

from django.db import transaction
from django.db.models import Sum

from epos.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from epos.money import ZERO, to_decimal
from epos.numbering import generate_reference
from orders.models import Order, OrderItem
from tables.models import Session
from tables.services import lock_session
from .calculators import calculate_bill, check_discount_ceiling
from .models import Bill

logger = logging.getLogger(__name__)


def session_subtotal(session):
    """Sum of line subtotals over the session's printed and paid orders."""
    total = OrderItem.objects.filter(
        order__session=session,
        order__status__in=Order.BILLABLE_STATUSES,
    ).aggregate(total=Sum('subtotal'))['total']
    return total or ZERO


def get_bill(bill_id):
    bill = Bill.objects.select_related('session__table', 'business_day').filter(id=bill_id).first()
    if bill is None:
        raise NotFoundError("Bill not found")
    return bill


def lock_bill(bill_id):
    """Fetch a bill row for update. Lock its session with lock_session() first."""
    bill = Bill.objects.select_for_update().filter(id=bill_id).first()
    if bill is None:
        raise NotFoundError("Bill not found")
    return bill


def _apply_totals(bill, session, discount_amount, discount_percentage, delivery_fee):
    totals = calculate_bill(
        session_subtotal(session),
        session.order_type,
        discount_amount=discount_amount,
        discount_percentage=discount_percentage,
        delivery_fee=delivery_fee,
    )
    bill.subtotal = totals.subtotal
    bill.discount_amount = totals.discount_amount
    bill.discount_percentage = totals.discount_percentage
    bill.tax_percentage = totals.tax_percentage
    bill.tax_amount = totals.tax_amount
    bill.delivery_fee = totals.delivery_fee
    bill.total = totals.total
    bill.save()
    return bill


def _optional_decimal(value, field):
    return None if value is None else to_decimal(value, field)


def upsert_bill(session_id, actor, discount_amount=None, discount_percentage=None, delivery_fee=None):
    """
    Create or recompute the session's bill.

    Omitted inputs keep what the bill already has. Passing one discount input
    replaces the other; pass discount_amount=0 to remove a discount. The
    session row is locked for the read-compute-write so concurrent edits
    cannot mix a stale subtotal with a fresh discount.
    """
    discount_amount = _optional_decimal(discount_amount, 'discount_amount')
    discount_percentage = _optional_decimal(discount_percentage, 'discount_percentage')
    delivery_fee = _optional_decimal(delivery_fee, 'delivery_fee')
    if discount_amount is not None and discount_percentage is not None:
        raise ValidationError("Give either discount_amount or discount_percentage, not both")

    check_discount_ceiling(actor, discount_percentage)

    with transaction.atomic():
        session = lock_session(session_id)
        bill = Bill.objects.select_for_update().filter(session=session).first()

        if bill is not None and bill.is_paid:
            raise ConflictError("Bill is already paid")
        if session.status != Session.Status.ACTIVE:
            raise PreconditionError("Session is closed")
        if not session.orders.filter(status__in=Order.BILLABLE_STATUSES).exists():
            raise PreconditionError("Send at least one order to the kitchen before billing")

        if discount_amount is None and discount_percentage is None and bill is not None:
            discount_percentage = bill.discount_percentage
            if discount_percentage is None:
                discount_amount = bill.discount_amount

        if delivery_fee is None:
            delivery_fee = bill.delivery_fee if bill is not None else session.delivery_fee

        if bill is None:
            bill = Bill(
                session=session,
                business_day_id=session.business_day_id,
                bill_number=generate_reference('BILL'),
                created_by=actor,
            )

        bill = _apply_totals(bill, session, discount_amount, discount_percentage, delivery_fee)

    logger.info("Bill %s for session %s: subtotal=%s discount=%s tax=%s total=%s",
                bill.bill_number, session.id, bill.subtotal, bill.discount_amount, bill.tax_amount, bill.total)
    return bill


def recompute_bill(session_id):
    """
    Refresh an unpaid bill after the session's billable orders changed.

    Stored discount and fee inputs are reused. Returns None when the session
    has no unpaid bill. Must run inside the caller's transaction with the
    session already locked through lock_session().
    """
    bill = Bill.objects.select_for_update().filter(session_id=session_id, is_paid=False).first()
    if bill is None:
        return None

    discount_amount = None if bill.discount_percentage is not None else bill.discount_amount
    bill = _apply_totals(bill, bill.session, discount_amount, bill.discount_percentage, bill.delivery_fee)
    logger.info("Bill %s recomputed: total=%s", bill.bill_number, bill.total)
    return bill
