"""
Payment settlement.

Settling a bill is four writes: record the payment, mark the bill paid,
mark the session's orders paid and close the session. They run in one
transaction. If any of them fails nothing is kept, the failing step is
logged by name, and the payment insert is never retried automatically.
"""
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from billing.models import Bill
from billing.services import get_bill, lock_bill
from epos.audit import record_audit
from epos.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from epos.money import quantize_money, to_decimal
from orders.models import Order
from tables.services import close_session, lock_session
from .models import Payment
from .receipts import build_receipt
from .signals import bill_paid

logger = logging.getLogger(__name__)


def _settle_orders(session, now):
    """Printed orders become paid. Orders that never reached the kitchen were never billed and are cancelled."""
    paid = session.orders.filter(status=Order.Status.PRINTED).update(status=Order.Status.PAID)
    cancelled = session.orders.filter(
        status__in=[Order.Status.PENDING, Order.Status.ACCEPTED]
    ).update(status=Order.Status.CANCELLED, cancelled_at=now)
    if cancelled:
        logger.warning("Session %s closed with %d unprinted orders; they were cancelled", session.id, cancelled)
    return paid


def pay(bill_id, actor, method, amount_paid):
    """
    Settle a bill with a single full payment.

    Returns (payment, bill, receipt).
    """
    amount_paid = quantize_money(to_decimal(amount_paid, 'amount_paid'))
    if method not in Payment.Method.values:
        raise ValidationError(f"Unknown payment method '{method}'")

    step = 'lock_bill'
    try:
        with transaction.atomic():
            session_id = Bill.objects.filter(id=bill_id).values_list('session_id', flat=True).first()
            if session_id is None:
                raise NotFoundError("Bill not found")
            session = lock_session(session_id)
            bill = lock_bill(bill_id)
            if bill.is_paid:
                raise ConflictError("Bill is already paid")
            if amount_paid < bill.total:
                raise ValidationError("Payment amount is less than the bill total", total=str(bill.total))

            change = amount_paid - bill.total
            now = timezone.now()

            step = 'record_payment'
            payment = Payment.objects.create(
                bill=bill,
                business_day_id=bill.business_day_id,
                payment_method=method,
                amount=amount_paid,
                created_by=actor,
            )

            step = 'mark_bill_paid'
            bill.is_paid = True
            bill.paid_at = now
            bill.paid_amount = amount_paid
            bill.change_amount = change
            bill.save(update_fields=['is_paid', 'paid_at', 'paid_amount', 'change_amount', 'updated_at'])

            step = 'mark_orders_paid'
            _settle_orders(session, now)

            step = 'close_session'
            close_session(session)

            step = 'audit'
            record_audit('payment_recorded', 'payments', payment.id, {
                'bill_number': bill.bill_number,
                'payment_method': method,
                'amount': str(amount_paid),
                'total': str(bill.total),
                'change': str(change),
            }, actor=actor)
    except DatabaseError:
        logger.exception("Settlement of bill %s failed at step '%s'; all steps rolled back", bill_id, step)
        raise PersistenceError("Payment could not be completed", step=step)

    bill = get_bill(bill.id)
    receipt = build_receipt(bill)
    bill_paid.send(sender=Bill, bill=bill, receipt=receipt)
    logger.info("Bill %s paid by %s: %s %s, change %s",
                bill.bill_number, actor, method, amount_paid, change)
    return payment, bill, receipt
