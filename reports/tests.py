from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from billing.services import upsert_bill
from businessday.services import open_business_day, close_business_day
from epos.exceptions import NotFoundError
from epos.testing import POSTestMixin
from orders.guards import QrSubmissionGuard
from orders.intake import submit_qr_order
from payment.services import pay
from tables.services import open_takeaway
from .services import end_of_day_report


class EndOfDayReportTests(POSTestMixin, TestCase):
    """Rollup of a business day"""

    def setUp(self):
        self.setUpPOS()
        self.business_day = open_business_day('500.00', self.owner)

    def test_empty_day(self):
        report = end_of_day_report(self.business_day.id)

        self.assertEqual(report['total_orders'], 0)
        self.assertEqual(report['paid_bills'], 0)
        self.assertEqual(report['net_sales'], Decimal('0'))
        self.assertEqual(report['average_bill_value'], Decimal('0'))
        self.assertEqual(report['sessions'], {'dine_in': 0, 'takeaway': 0, 'delivery': 0})

    def test_day_totals(self):
        """Only paid bills count as sales; payments are grouped by method"""
        dine_in = self.printed_session(table_number='12', quantity=2)
        bill = upsert_bill(dine_in.id, self.cashier)
        pay(bill.id, self.cashier, 'cash', '30.00')

        second = self.printed_session(table_number='14', quantity=1)
        upsert_bill(second.id, self.cashier)
        submit_qr_order('14', [{'menu_item_id': self.create_menu_item().id, 'quantity': 1}],
                        client_request_id='r1', source_ip='10.0.0.1', guard=QrSubmissionGuard(self.redis))
        open_takeaway(self.cashier)

        close_business_day(self.business_day.id, '530.00', self.owner)
        report = end_of_day_report(self.business_day.id)

        self.assertEqual(report['status'], 'closed')
        self.assertEqual(report['total_orders'], 3)
        self.assertEqual(report['qr_orders'], 1)
        self.assertEqual(report['manual_orders'], 2)
        self.assertEqual(report['paid_bills'], 1)
        self.assertEqual(report['total_sales'], Decimal('25.98'))
        self.assertEqual(report['total_tax'], Decimal('3.64'))
        self.assertEqual(report['net_sales'], Decimal('29.62'))
        self.assertEqual(report['average_bill_value'], Decimal('29.62'))
        self.assertEqual(report['payments']['cash'], Decimal('30.00'))
        self.assertEqual(report['payments']['card'], Decimal('0'))
        self.assertEqual(report['sessions'], {'dine_in': 2, 'takeaway': 1, 'delivery': 0})
        self.assertEqual(report['cash_difference'], Decimal('30.00'))

    def test_unknown_day(self):
        with self.assertRaises(NotFoundError):
            end_of_day_report(9999)


class EndOfDayReportAPITests(POSTestMixin, APITestCase):
    """Report access"""

    def setUp(self):
        self.setUpPOS()
        self.business_day = open_business_day('500.00', self.owner)
        self.url = reverse('end_of_day_report', kwargs={'day_id': self.business_day.id})

    def test_owner_only(self):
        self.authenticate(self.cashier)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)

        self.authenticate(self.owner)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['business_day_id'], self.business_day.id)
