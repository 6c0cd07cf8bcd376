from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from billing.models import Bill
from billing.services import lock_bill, upsert_bill
from businessday.services import open_business_day
from epos.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from epos.models import AuditLog
from epos.testing import POSTestMixin
from orders.intake import create_manual_order
from orders.models import Order
from tables.models import Session
from tables.services import lock_session
from .models import Payment
from .signals import bill_paid
from . import services


class SettlementTests(POSTestMixin, TestCase):
    """Paying a bill settles the whole session"""

    def setUp(self):
        self.setUpPOS()
        open_business_day('500.00', self.owner)
        self.session = self.printed_session(table_number='12', quantity=2)
        self.bill = upsert_bill(self.session.id, self.cashier)

    def test_underpayment_rejected(self):
        """20.00 does not cover a 29.62 bill"""
        with self.assertRaises(ValidationError) as caught:
            services.pay(self.bill.id, self.cashier, 'cash', '20.00')

        self.assertEqual(caught.exception.extra['total'], '29.62')
        self.assertFalse(Payment.objects.exists())

    def test_payment_closes_session(self):
        """30.00 pays the bill, returns 0.38 and closes everything"""
        payment, bill, receipt = services.pay(self.bill.id, self.cashier, 'cash', '30.00')

        self.assertEqual(payment.amount, Decimal('30.00'))
        self.assertEqual(payment.payment_method, 'cash')
        self.assertTrue(bill.is_paid)
        self.assertEqual(bill.paid_amount, Decimal('30.00'))
        self.assertEqual(bill.change_amount, Decimal('0.38'))
        self.assertIsNotNone(bill.paid_at)

        session = Session.objects.get(id=self.session.id)
        self.assertEqual(session.status, Session.Status.CLOSED)
        self.assertIsNotNone(session.closed_at)
        self.assertEqual(set(session.orders.values_list('status', flat=True)), {Order.Status.PAID})
        self.assertTrue(AuditLog.objects.filter(action='payment_recorded').exists())

        self.assertEqual(receipt['total'], '29.62')
        self.assertEqual(receipt['change_amount'], '0.38')
        self.assertEqual(receipt['items'][0]['quantity'], 2)
        self.assertEqual(receipt['payments'][0]['amount'], '30.00')

    def test_exact_payment(self):
        _, bill, _ = services.pay(self.bill.id, self.cashier, 'card', '29.62')
        self.assertEqual(bill.change_amount, Decimal('0.00'))

    def test_unprinted_orders_are_cancelled(self):
        """Orders that never reached the kitchen do not stay open after payment"""
        item = self.create_menu_item(name="Tea", price='2.00')
        extra = create_manual_order(self.session.id, self.cashier, [{'menu_item_id': item.id, 'quantity': 1}])

        services.pay(self.bill.id, self.cashier, 'cash', '30.00')

        extra.refresh_from_db()
        self.assertEqual(extra.status, Order.Status.CANCELLED)

    def test_already_paid(self):
        services.pay(self.bill.id, self.cashier, 'cash', '30.00')
        with self.assertRaises(ConflictError):
            services.pay(self.bill.id, self.cashier, 'cash', '30.00')
        self.assertEqual(Payment.objects.count(), 1)

    def test_unknown_bill_and_method(self):
        with self.assertRaises(NotFoundError):
            services.pay(9999, self.cashier, 'cash', '30.00')
        with self.assertRaises(ValidationError):
            services.pay(self.bill.id, self.cashier, 'cheque', '30.00')

    def test_failed_step_rolls_back(self):
        """A failure at session close leaves no payment behind"""
        with mock.patch('payment.services.close_session', side_effect=DatabaseError("locked")):
            with self.assertRaises(PersistenceError) as caught:
                services.pay(self.bill.id, self.cashier, 'cash', '30.00')

        self.assertEqual(caught.exception.extra['step'], 'close_session')
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(Bill.objects.get(id=self.bill.id).is_paid)
        self.assertEqual(Session.objects.get(id=self.session.id).status, Session.Status.ACTIVE)
        self.assertEqual(set(self.session.orders.values_list('status', flat=True)), {Order.Status.PRINTED})

    def test_session_locked_before_bill(self):
        """Settlement locks the session row first, then the bill"""
        calls = []
        self.track_calls('payment.services.lock_session', lock_session, calls)
        self.track_calls('payment.services.lock_bill', lock_bill, calls)

        services.pay(self.bill.id, self.cashier, 'cash', '30.00')

        self.assertEqual(calls, ['lock_session', 'lock_bill'])

    def test_failed_audit_names_its_step(self):
        with mock.patch('payment.services.record_audit', side_effect=DatabaseError("audit table locked")):
            with self.assertRaises(PersistenceError) as caught:
                services.pay(self.bill.id, self.cashier, 'cash', '30.00')

        self.assertEqual(caught.exception.extra['step'], 'audit')
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(Bill.objects.get(id=self.bill.id).is_paid)

    def test_bill_paid_signal(self):
        """Receipt sinks receive the paid bill"""
        received = []

        def receiver(sender, bill, receipt, **kwargs):
            received.append((bill.id, receipt['bill_number']))

        bill_paid.connect(receiver)
        self.addCleanup(bill_paid.disconnect, receiver)
        services.pay(self.bill.id, self.cashier, 'mobile_wallet', '30.00')

        self.assertEqual(received, [(self.bill.id, self.bill.bill_number)])


class PaymentAPITests(POSTestMixin, APITestCase):
    """Payment and receipt endpoints"""

    def setUp(self):
        self.setUpPOS()
        open_business_day('500.00', self.owner)
        self.session = self.printed_session(table_number='12', quantity=2)
        self.bill = upsert_bill(self.session.id, self.cashier)
        self.authenticate(self.cashier)

    def test_take_payment(self):
        response = self.client.post(reverse('take_payment', kwargs={'bill_id': self.bill.id}),
                                    {'payment_method': 'cash', 'amount_paid': '30.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['bill']['change_amount'], '0.38')
        self.assertEqual(response.data['payment']['amount'], '30.00')
        self.assertEqual(response.data['receipt']['bill_number'], self.bill.bill_number)

        response = self.client.get(reverse('receipt', kwargs={'bill_id': self.bill.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], '29.62')

    def test_underpayment_is_400(self):
        response = self.client.post(reverse('take_payment', kwargs={'bill_id': self.bill.id}),
                                    {'payment_method': 'cash', 'amount_paid': '20.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Payment amount is less than the bill total')

    def test_unknown_method_is_400(self):
        response = self.client.post(reverse('take_payment', kwargs={'bill_id': self.bill.id}),
                                    {'payment_method': 'cheque', 'amount_paid': '30.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_method', response.data)

    def test_receipt_needs_paid_bill(self):
        response = self.client.get(reverse('receipt', kwargs={'bill_id': self.bill.id}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
