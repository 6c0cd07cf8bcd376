import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from epos.audit import record_audit
from epos.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from epos.money import quantize_money, to_decimal
from epos.states import ensure_transition
from .models import BusinessDay

logger = logging.getLogger(__name__)


def current_business_day():
    """The open business day, or None when sales are closed."""
    return BusinessDay.objects.filter(status=BusinessDay.Status.OPEN).first()


def require_open_business_day():
    business_day = current_business_day()
    if business_day is None:
        raise PreconditionError("No business day is open. Open the day before taking orders.")
    return business_day


def open_business_day(opening_cash, actor):
    opening_cash = quantize_money(to_decimal(opening_cash, 'opening_cash'))
    if opening_cash < 0:
        raise ValidationError("opening_cash cannot be negative")

    if current_business_day() is not None:
        raise ConflictError("A business day is already open")

    # The partial unique index settles concurrent opens
    try:
        with transaction.atomic():
            business_day = BusinessDay.objects.create(
                status=BusinessDay.Status.OPEN,
                opened_by=actor,
                opening_cash=opening_cash,
            )
    except IntegrityError:
        logger.warning("Concurrent business day open rejected for %s", actor)
        raise ConflictError("A business day is already open")

    record_audit('business_day_opened', 'business_days', business_day.id,
                 {'opening_cash': str(opening_cash)}, actor=actor)
    return business_day


def close_business_day(day_id, closing_cash, actor):
    """
    Close the open business day.

    expected_cash is the opening float only; cash taken during the day is
    not added to it.
    """
    closing_cash = quantize_money(to_decimal(closing_cash, 'closing_cash'))
    if closing_cash < 0:
        raise ValidationError("closing_cash cannot be negative")

    with transaction.atomic():
        business_day = (
            BusinessDay.objects.select_for_update()
            .filter(id=day_id, status=BusinessDay.Status.OPEN)
            .first()
        )
        if business_day is None:
            raise NotFoundError("Open business day not found")

        ensure_transition('Business day', business_day.status, BusinessDay.Status.CLOSED,
                          BusinessDay.TRANSITIONS)

        active_sessions = business_day.sessions.filter(status='active').count()
        if active_sessions:
            logger.warning("Closing business day %s with %d active sessions", business_day.id, active_sessions)

        business_day.status = BusinessDay.Status.CLOSED
        business_day.closed_at = timezone.now()
        business_day.closed_by = actor
        business_day.closing_cash = closing_cash
        business_day.expected_cash = business_day.opening_cash
        business_day.cash_difference = closing_cash - business_day.expected_cash
        business_day.save()

    record_audit('business_day_closed', 'business_days', business_day.id, {
        'closing_cash': str(business_day.closing_cash),
        'expected_cash': str(business_day.expected_cash),
        'cash_difference': str(business_day.cash_difference),
    }, actor=actor)
    return business_day
