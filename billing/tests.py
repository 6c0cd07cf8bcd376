from decimal import Decimal
from types import SimpleNamespace

from django.test import TestCase, SimpleTestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from businessday.services import open_business_day
from epos.exceptions import AuthorizationError, ConflictError, PreconditionError, ValidationError
from epos.testing import POSTestMixin
from orders.intake import create_manual_order
from orders.kitchen import print_order
from tables.services import open_takeaway, open_delivery, lock_session
from .calculators import calculate_bill, check_discount_ceiling
from .models import Bill
from . import services


class CalculateBillTests(SimpleTestCase):
    """Bill arithmetic"""

    def test_dine_in_tax_rounds_half_up(self):
        """25.98 at 14% is 3.6372 which rounds to 3.64"""
        totals = calculate_bill(Decimal('25.98'), 'dine_in')

        self.assertEqual(totals.tax_percentage, Decimal('14.00'))
        self.assertEqual(totals.tax_amount, Decimal('3.64'))
        self.assertEqual(totals.total, Decimal('29.62'))

    def test_half_cent_rounds_up(self):
        totals = calculate_bill(Decimal('0.25'), 'dine_in', tax_rate=Decimal('0.1'))
        self.assertEqual(totals.tax_amount, Decimal('0.03'))

    def test_takeaway_and_delivery_are_untaxed(self):
        """Tax is dine-in only, the delivery fee is delivery only"""
        takeaway = calculate_bill(Decimal('20.00'), 'takeaway', delivery_fee=Decimal('5.00'))
        delivery = calculate_bill(Decimal('20.00'), 'delivery', delivery_fee=Decimal('5.00'))

        self.assertEqual(takeaway.tax_amount, Decimal('0'))
        self.assertEqual(takeaway.delivery_fee, Decimal('0'))
        self.assertEqual(takeaway.total, Decimal('20.00'))
        self.assertEqual(delivery.tax_amount, Decimal('0'))
        self.assertEqual(delivery.total, Decimal('25.00'))

    def test_percentage_discount_is_taken_before_tax(self):
        totals = calculate_bill(Decimal('100.00'), 'dine_in', discount_percentage=Decimal('10'))

        self.assertEqual(totals.discount_amount, Decimal('10.00'))
        self.assertEqual(totals.tax_amount, Decimal('12.60'))
        self.assertEqual(totals.total, Decimal('102.60'))

    def test_total_identity(self):
        """total is always subtotal - discount + tax + fee"""
        cases = [
            (Decimal('25.98'), 'dine_in', {'discount_amount': Decimal('3.33')}),
            (Decimal('7.77'), 'dine_in', {'discount_percentage': Decimal('12.5')}),
            (Decimal('49.99'), 'delivery', {'delivery_fee': Decimal('4.25')}),
            (Decimal('0.01'), 'takeaway', {}),
            (Decimal('0'), 'dine_in', {}),
        ]
        for subtotal, order_type, kwargs in cases:
            totals = calculate_bill(subtotal, order_type, **kwargs)
            self.assertEqual(
                totals.total,
                totals.subtotal - totals.discount_amount + totals.tax_amount + totals.delivery_fee,
            )
            self.assertLessEqual(totals.discount_amount, totals.subtotal)
            self.assertEqual(totals.total, totals.total.quantize(Decimal('0.01')))

    def test_discount_inputs_are_exclusive(self):
        with self.assertRaises(ValidationError):
            calculate_bill(Decimal('10'), 'dine_in', discount_amount=Decimal('1'), discount_percentage=Decimal('5'))

    def test_discount_bounds(self):
        """Discounts cannot go negative or exceed the subtotal"""
        with self.assertRaises(ValidationError):
            calculate_bill(Decimal('10'), 'dine_in', discount_amount=Decimal('10.01'))
        with self.assertRaises(ValidationError):
            calculate_bill(Decimal('10'), 'dine_in', discount_amount=Decimal('-1'))
        with self.assertRaises(ValidationError):
            calculate_bill(Decimal('10'), 'dine_in', discount_percentage=Decimal('101'))

    def test_full_discount(self):
        totals = calculate_bill(Decimal('10'), 'dine_in', discount_percentage=Decimal('100'))
        self.assertEqual(totals.total, Decimal('0.00'))


class DiscountCeilingTests(SimpleTestCase):
    """Role ceilings on percentage discounts"""

    def test_cashier_over_ceiling(self):
        """Cashiers stop at 15%"""
        with self.assertRaises(AuthorizationError) as caught:
            check_discount_ceiling(SimpleNamespace(role='cashier'), Decimal('20'))

        self.assertEqual(caught.exception.message, 'Discount limit for cashier is 15%')
        self.assertEqual(caught.exception.extra['limit'], 15.0)

    def test_within_ceiling(self):
        check_discount_ceiling(SimpleNamespace(role='cashier'), Decimal('15'))
        check_discount_ceiling(SimpleNamespace(role='owner'), Decimal('20'))

    def test_owner_over_ceiling(self):
        with self.assertRaises(AuthorizationError):
            check_discount_ceiling(SimpleNamespace(role='owner'), Decimal('30.5'))

    def test_role_without_ceiling(self):
        """Roles that are not configured cannot give percentage discounts"""
        with self.assertRaises(AuthorizationError) as caught:
            check_discount_ceiling(SimpleNamespace(role='waiter'), Decimal('1'))
        self.assertEqual(caught.exception.extra['limit'], 0)

        check_discount_ceiling(SimpleNamespace(role='waiter'), None)
        check_discount_ceiling(SimpleNamespace(role='waiter'), Decimal('0'))

    @override_settings(POS_DISCOUNT_CEILINGS={'cashier': 5})
    def test_ceilings_are_configurable(self):
        with self.assertRaises(AuthorizationError):
            check_discount_ceiling(SimpleNamespace(role='cashier'), Decimal('10'))


class BillServiceTests(POSTestMixin, TestCase):
    """Creating and recomputing bills"""

    def setUp(self):
        self.setUpPOS()
        self.business_day = open_business_day('500.00', self.owner)

    def test_dine_in_bill(self):
        """Two plates at 12.99 come to 29.62 with tax"""
        session = self.printed_session(table_number='12', quantity=2)

        bill = services.upsert_bill(session.id, self.cashier)

        self.assertEqual(bill.subtotal, Decimal('25.98'))
        self.assertEqual(bill.tax_percentage, Decimal('14.00'))
        self.assertEqual(bill.tax_amount, Decimal('3.64'))
        self.assertEqual(bill.total, Decimal('29.62'))
        self.assertEqual(bill.business_day, self.business_day)
        self.assertTrue(bill.bill_number.startswith('BILL-'))

    def test_unprinted_orders_are_not_billed(self):
        """Only printed orders count towards the subtotal"""
        session = self.printed_session(quantity=1)
        item = self.create_menu_item(name="Falafel", price='4.00')
        create_manual_order(session.id, self.cashier, [{'menu_item_id': item.id, 'quantity': 1}])

        bill = services.upsert_bill(session.id, self.cashier)

        self.assertEqual(bill.subtotal, Decimal('12.99'))

    def test_bill_needs_a_printed_order(self):
        session = open_takeaway(self.cashier)
        with self.assertRaises(PreconditionError):
            services.upsert_bill(session.id, self.cashier)

    def test_upsert_is_idempotent(self):
        """Recomputing keeps one bill per session"""
        session = self.printed_session()
        first = services.upsert_bill(session.id, self.cashier)
        second = services.upsert_bill(session.id, self.cashier)

        self.assertEqual(first.id, second.id)
        self.assertEqual(first.bill_number, second.bill_number)
        self.assertEqual(Bill.objects.count(), 1)

    def test_cashier_discount_ceiling(self):
        """20% is refused for a cashier and allowed for the owner"""
        session = self.printed_session()

        with self.assertRaises(AuthorizationError):
            services.upsert_bill(session.id, self.cashier, discount_percentage='20')
        self.assertFalse(Bill.objects.exists())

        bill = services.upsert_bill(session.id, self.owner, discount_percentage='20')
        self.assertEqual(bill.discount_amount, Decimal('5.20'))
        self.assertEqual(bill.total, Decimal('23.69'))

    def test_print_refreshes_existing_bill(self):
        """Printing another order recomputes the bill with its stored discount"""
        session = self.printed_session(quantity=1)
        services.upsert_bill(session.id, self.owner, discount_percentage='10')
        order = create_manual_order(session.id, self.cashier, [
            {'menu_item_id': session.orders.first().items.first().menu_item_id, 'quantity': 1}
        ])

        print_order(order.id, self.cashier)

        bill = Bill.objects.get(session=session)
        self.assertEqual(bill.subtotal, Decimal('25.98'))
        self.assertEqual(bill.discount_percentage, Decimal('10.00'))
        self.assertEqual(bill.discount_amount, Decimal('2.60'))

    def test_upsert_locks_session(self):
        """Bill writes serialize on the session row"""
        session = self.printed_session()
        calls = []
        self.track_calls('billing.services.lock_session', lock_session, calls)

        services.upsert_bill(session.id, self.cashier)

        self.assertEqual(calls, ['lock_session'])

    def test_omitted_discount_is_kept(self):
        session = self.printed_session()
        services.upsert_bill(session.id, self.cashier, discount_amount='2.00')

        bill = services.upsert_bill(session.id, self.cashier)

        self.assertEqual(bill.discount_amount, Decimal('2.00'))

    def test_delivery_bill_uses_session_fee(self):
        session = open_delivery(self.cashier, "Mona", "0100", "12 Nile St", delivery_fee='6.00')
        item = self.create_menu_item()
        order = create_manual_order(session.id, self.cashier, [{'menu_item_id': item.id, 'quantity': 1}])
        print_order(order.id, self.cashier)

        bill = services.upsert_bill(session.id, self.cashier)

        self.assertEqual(bill.tax_amount, Decimal('0.00'))
        self.assertEqual(bill.delivery_fee, Decimal('6.00'))
        self.assertEqual(bill.total, Decimal('18.99'))

    def test_paid_bill_is_frozen(self):
        session = self.printed_session()
        bill = services.upsert_bill(session.id, self.cashier)
        Bill.objects.filter(id=bill.id).update(is_paid=True)

        with self.assertRaises(ConflictError):
            services.upsert_bill(session.id, self.cashier, discount_amount='1.00')
        self.assertIsNone(services.recompute_bill(session.id))


class BillAPITests(POSTestMixin, APITestCase):
    """Bill endpoints"""

    def setUp(self):
        self.setUpPOS()
        open_business_day('500.00', self.owner)
        self.session = self.printed_session()

    def test_cashier_over_ceiling_is_403(self):
        self.authenticate(self.cashier)
        response = self.client.post(reverse('upsert_bill', kwargs={'session_id': self.session.id}),
                                    {'discount_percentage': '20'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['limit'], 15.0)

    def test_owner_discount_and_read_back(self):
        self.authenticate(self.owner)
        response = self.client.post(reverse('upsert_bill', kwargs={'session_id': self.session.id}),
                                    {'discount_percentage': '20'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(reverse('get_bill', kwargs={'bill_id': response.data['id']}))
        self.assertEqual(response.data['total'], '23.69')
        self.assertEqual(response.data['table_number'], '12')

    def test_both_discounts_rejected(self):
        self.authenticate(self.owner)
        response = self.client.post(reverse('upsert_bill', kwargs={'session_id': self.session.id}),
                                    {'discount_percentage': '5', 'discount_amount': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
