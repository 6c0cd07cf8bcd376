"""
Bill calculation.

Pure functions over Decimals; nothing here touches the database. The
billing service feeds them the session's billable subtotal and stores the
result.

    totals = calculate_bill(Decimal('25.98'), 'dine_in')
    totals.tax_amount  # Decimal('3.64')
    totals.total       # Decimal('29.62')
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings

from epos.exceptions import AuthorizationError, ValidationError
from epos.money import ZERO, quantize_money

HUNDRED = Decimal('100')


@dataclass(frozen=True)
class BillTotals:
    subtotal: Decimal
    discount_amount: Decimal
    discount_percentage: Optional[Decimal]
    tax_percentage: Decimal
    tax_amount: Decimal
    delivery_fee: Decimal
    total: Decimal


def calculate_bill(subtotal: Decimal, order_type: str,
                   discount_amount: Optional[Decimal] = None,
                   discount_percentage: Optional[Decimal] = None,
                   delivery_fee: Decimal = ZERO,
                   tax_rate: Optional[Decimal] = None) -> BillTotals:
    """
    Compute the derived bill amounts.

    Args:
        subtotal: Sum of billable line subtotals
        order_type: Session order type; tax applies to dine_in only and the
            delivery fee to delivery only
        discount_amount: Absolute discount
        discount_percentage: Percentage discount; mutually exclusive with
            discount_amount
        delivery_fee: Fee requested for the session
        tax_rate: Fraction, defaults to settings.POS_TAX_RATE

    Returns:
        BillTotals with every amount rounded half-up to the cent
    """
    if discount_amount is not None and discount_percentage is not None:
        raise ValidationError("Give either discount_amount or discount_percentage, not both")

    subtotal = quantize_money(subtotal)
    tax_rate = settings.POS_TAX_RATE if tax_rate is None else Decimal(tax_rate)

    if discount_percentage is not None:
        discount_percentage = Decimal(discount_percentage)
        if discount_percentage < 0 or discount_percentage > HUNDRED:
            raise ValidationError("discount_percentage must be between 0 and 100")
        discount = quantize_money(subtotal * discount_percentage / HUNDRED)
    elif discount_amount is not None:
        discount = quantize_money(discount_amount)
    else:
        discount = ZERO

    if discount < 0 or discount > subtotal:
        raise ValidationError("Discount must be between 0 and the subtotal", subtotal=str(subtotal))

    taxable = subtotal - discount
    if order_type == 'dine_in':
        tax_percentage = quantize_money(tax_rate * HUNDRED)
        tax_amount = quantize_money(taxable * tax_rate)
    else:
        tax_percentage = ZERO
        tax_amount = ZERO

    if order_type == 'delivery':
        delivery_fee = quantize_money(delivery_fee or ZERO)
        if delivery_fee < 0:
            raise ValidationError("delivery_fee cannot be negative")
    else:
        delivery_fee = ZERO

    return BillTotals(
        subtotal=subtotal,
        discount_amount=discount,
        discount_percentage=discount_percentage,
        tax_percentage=tax_percentage,
        tax_amount=tax_amount,
        delivery_fee=delivery_fee,
        total=taxable + tax_amount + delivery_fee,
    )


def discount_ceiling(role):
    """Highest percentage discount a role may give, or None if it may give none."""
    ceiling = settings.POS_DISCOUNT_CEILINGS.get(role)
    return Decimal(str(ceiling)) if ceiling is not None else None


def check_discount_ceiling(actor, discount_percentage):
    """
    Enforce the role ceiling on percentage discounts.

    Absolute discount amounts are not checked here.
    """
    if discount_percentage is None or Decimal(discount_percentage) == 0:
        return
    ceiling = discount_ceiling(actor.role)
    if ceiling is None:
        raise AuthorizationError(
            f"Your role ({actor.role}) cannot apply percentage discounts",
            limit=0,
        )
    if Decimal(discount_percentage) > ceiling:
        raise AuthorizationError(
            f"Discount limit for {actor.role} is {ceiling:g}%",
            limit=float(ceiling),
        )
