from orders.models import Order


def _money(value):
    return None if value is None else str(value)


def build_receipt(bill):
    """Receipt data for a bill: session details, billed lines, totals and payments."""
    session = bill.session
    orders = (
        session.orders.filter(status__in=Order.BILLABLE_STATUSES)
        .prefetch_related('items__menu_item', 'items__modifiers__modifier')
    )
    items = []
    for order in orders:
        for item in order.items.all():
            items.append({
                'order_number': order.order_number,
                'quantity': item.quantity,
                'item_name': item.menu_item.name,
                'unit_price': _money(item.unit_price),
                'subtotal': _money(item.subtotal),
                'notes': item.notes,
                'modifiers': [
                    {'name': line.modifier.name, 'price_adjustment': _money(line.price_adjustment)}
                    for line in item.modifiers.all()
                ],
            })

    return {
        'bill_number': bill.bill_number,
        'session': {
            'id': session.id,
            'order_type': session.order_type,
            'table_number': session.table.table_number if session.table_id else None,
            'guest_count': session.guest_count,
            'customer_name': session.customer_name,
            'customer_phone': session.customer_phone,
            'customer_address': session.customer_address,
            'opened_at': session.opened_at,
            'closed_at': session.closed_at,
        },
        'items': items,
        'subtotal': _money(bill.subtotal),
        'discount_amount': _money(bill.discount_amount),
        'discount_percentage': _money(bill.discount_percentage),
        'tax_percentage': _money(bill.tax_percentage),
        'tax_amount': _money(bill.tax_amount),
        'delivery_fee': _money(bill.delivery_fee),
        'total': _money(bill.total),
        'payments': [
            {
                'payment_method': payment.payment_method,
                'amount': _money(payment.amount),
                'created_at': payment.created_at,
            }
            for payment in bill.payments.order_by('created_at', 'id')
        ],
        'paid_amount': _money(bill.paid_amount),
        'change_amount': _money(bill.change_amount),
        'paid_at': bill.paid_at,
    }
