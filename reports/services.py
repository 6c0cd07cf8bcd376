from django.db.models import Count, Q, Sum

from businessday.models import BusinessDay
from billing.models import Bill
from epos.exceptions import NotFoundError
from epos.money import ZERO, quantize_money
from orders.models import Order
from payment.models import Payment
from tables.models import Session


def end_of_day_report(business_day_id):
    """
    Read-only rollup of one business day.

    Sales figures come from paid bills only; payment figures are the amounts
    tendered per method.
    """
    business_day = BusinessDay.objects.filter(id=business_day_id).first()
    if business_day is None:
        raise NotFoundError("Business day not found")

    orders = Order.objects.filter(business_day=business_day).aggregate(
        total=Count('id'),
        qr=Count('id', filter=Q(source=Order.Source.QR)),
        manual=Count('id', filter=Q(source=Order.Source.MANUAL)),
    )

    bills = Bill.objects.filter(business_day=business_day, is_paid=True).aggregate(
        count=Count('id'),
        subtotal=Sum('subtotal'),
        discount=Sum('discount_amount'),
        tax=Sum('tax_amount'),
        delivery=Sum('delivery_fee'),
        total=Sum('total'),
    )

    payments = {method: ZERO for method in Payment.Method.values}
    for row in (Payment.objects.filter(business_day=business_day)
                .values('payment_method').annotate(amount=Sum('amount'))):
        payments[row['payment_method']] = row['amount']

    sessions = {order_type: 0 for order_type in Session.OrderType.values}
    for row in (Session.objects.filter(business_day=business_day)
                .values('order_type').annotate(count=Count('id'))):
        sessions[row['order_type']] = row['count']

    net_sales = bills['total'] or ZERO
    average = quantize_money(net_sales / bills['count']) if bills['count'] else ZERO

    return {
        'business_day_id': business_day.id,
        'status': business_day.status,
        'opened_at': business_day.opened_at,
        'closed_at': business_day.closed_at,
        'total_orders': orders['total'],
        'qr_orders': orders['qr'],
        'manual_orders': orders['manual'],
        'paid_bills': bills['count'],
        'total_sales': bills['subtotal'] or ZERO,
        'total_discount': bills['discount'] or ZERO,
        'total_tax': bills['tax'] or ZERO,
        'total_delivery_fees': bills['delivery'] or ZERO,
        'net_sales': net_sales,
        'payments': payments,
        'sessions': sessions,
        'average_bill_value': average,
        'opening_cash': business_day.opening_cash,
        'closing_cash': business_day.closing_cash,
        'cash_difference': business_day.cash_difference,
    }
