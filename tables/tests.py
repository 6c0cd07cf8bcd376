from decimal import Decimal
from unittest import mock

from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from businessday.services import open_business_day
from epos.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from epos.testing import POSTestMixin
from .models import Table, Session
from . import services


class SessionLifecycleTests(POSTestMixin, TestCase):
    """Opening and closing dine-in, takeaway and delivery sessions"""

    def setUp(self):
        self.setUpPOS()
        self.table = Table.objects.create(table_number='12', capacity=4)

    def test_dine_in_requires_open_business_day(self):
        """No session can be opened before the day starts"""
        with self.assertRaises(PreconditionError):
            services.open_dine_in(self.table.id, 2, self.waiter)

    def test_open_dine_in(self):
        """A dine-in session binds the table to the open day"""
        day = open_business_day('500.00', self.owner)

        session = services.open_dine_in(self.table.id, 2, self.waiter)

        self.assertEqual(session.business_day, day)
        self.assertEqual(session.table, self.table)
        self.assertEqual(session.order_type, Session.OrderType.DINE_IN)
        self.assertEqual(session.status, Session.Status.ACTIVE)
        self.assertEqual(session.guest_count, 2)

    def test_second_dine_in_conflicts(self):
        """A table holds at most one active session"""
        open_business_day('500.00', self.owner)
        services.open_dine_in(self.table.id, 2, self.waiter)

        with self.assertRaises(ConflictError):
            services.open_dine_in(self.table.id, 3, self.cashier)
        self.assertEqual(Session.objects.filter(table=self.table, status='active').count(), 1)

    def test_concurrent_dine_in_hits_unique_constraint(self):
        """A racing open that passed the pre-check gets a conflict, not a second session"""
        open_business_day('500.00', self.owner)
        services.open_dine_in(self.table.id, 2, self.waiter)

        with mock.patch('tables.services.active_sessions_for_table', return_value=Session.objects.none()):
            with self.assertRaises(ConflictError):
                services.open_dine_in(self.table.id, 3, self.cashier)
        self.assertEqual(Session.objects.filter(table=self.table, status='active').count(), 1)

    def test_database_rejects_two_active_sessions(self):
        """The partial unique index holds on its own"""
        day = open_business_day('500.00', self.owner)
        Session.objects.create(business_day=day, table=self.table, order_type='dine_in')
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Session.objects.create(business_day=day, table=self.table, order_type='dine_in')

    def test_closed_session_frees_the_table(self):
        """After close a new session can be opened on the same table"""
        open_business_day('500.00', self.owner)
        session = services.open_dine_in(self.table.id, 2, self.waiter)
        services.close_session(session)

        again = services.open_dine_in(self.table.id, 4, self.waiter)

        self.assertNotEqual(again.id, session.id)

    def test_close_session_twice(self):
        """Closed is terminal"""
        open_business_day('500.00', self.owner)
        session = services.open_dine_in(self.table.id, 2, self.waiter)
        services.close_session(session)

        with self.assertRaises(ConflictError):
            services.close_session(session)

    def test_dine_in_rejects_bad_guest_count(self):
        open_business_day('500.00', self.owner)
        with self.assertRaises(ValidationError):
            services.open_dine_in(self.table.id, 0, self.waiter)

    def test_dine_in_unknown_and_inactive_tables(self):
        """Missing tables are 404s, inactive ones cannot be seated"""
        open_business_day('500.00', self.owner)
        inactive = Table.objects.create(table_number='99', is_active=False)

        with self.assertRaises(NotFoundError):
            services.open_dine_in(4242, 2, self.waiter)
        with self.assertRaises(PreconditionError):
            services.open_dine_in(inactive.id, 2, self.waiter)

    def test_open_takeaway(self):
        """Takeaway sessions have no table and blank customer fields become null"""
        open_business_day('500.00', self.owner)

        session = services.open_takeaway(self.cashier, customer_name="  ", customer_phone="0100")

        self.assertIsNone(session.table)
        self.assertIsNone(session.customer_name)
        self.assertEqual(session.customer_phone, "0100")
        self.assertEqual(session.order_type, Session.OrderType.TAKEAWAY)

    def test_delivery_requires_customer_details(self):
        """Name, phone and address are all required"""
        open_business_day('500.00', self.owner)

        with self.assertRaises(ValidationError) as caught:
            services.open_delivery(self.cashier, "Mona", "", None)

        self.assertEqual(caught.exception.extra['fields'], ['customer_phone', 'customer_address'])

    def test_delivery_uses_default_fee(self):
        open_business_day('500.00', self.owner)

        session = services.open_delivery(self.cashier, "Mona", "0100", "12 Nile St")

        self.assertEqual(session.delivery_fee, Decimal('5.00'))
        self.assertIsNone(session.table)

    def test_delivery_custom_fee(self):
        open_business_day('500.00', self.owner)

        session = services.open_delivery(self.cashier, "Mona", "0100", "12 Nile St", delivery_fee='7.5')

        self.assertEqual(session.delivery_fee, Decimal('7.50'))


class TableBoardTests(POSTestMixin, TestCase):
    """Derived occupancy and QR toggling"""

    def setUp(self):
        self.setUpPOS()
        self.table = Table.objects.create(table_number='5', capacity=2)
        open_business_day('500.00', self.owner)

    def test_occupancy_follows_active_session(self):
        """occupied is true exactly while an active session exists"""
        board = {table.table_number: table for table in services.table_board()}
        self.assertFalse(board['5'].occupied)

        session = services.open_dine_in(self.table.id, 2, self.waiter)
        board = {table.table_number: table for table in services.table_board()}
        self.assertTrue(board['5'].occupied)
        self.assertEqual(board['5'].active_session_id, session.id)

        services.close_session(session)
        board = {table.table_number: table for table in services.table_board()}
        self.assertFalse(board['5'].occupied)
        self.assertIsNone(board['5'].active_session_id)

    def test_board_hides_deleted_tables(self):
        Table.objects.create(table_number='6', deleted_at=timezone.now())
        self.assertEqual([t.table_number for t in services.table_board()], ['5'])

    def test_toggle_qr_leaves_session_alone(self):
        """Disabling QR does not touch the table's session"""
        session = services.open_dine_in(self.table.id, 2, self.waiter)

        table = services.toggle_qr(self.table.id)

        self.assertFalse(table.qr_enabled)
        session.refresh_from_db()
        self.assertEqual(session.status, Session.Status.ACTIVE)
        self.assertTrue(services.toggle_qr(self.table.id).qr_enabled)

    def test_toggle_unknown_table(self):
        with self.assertRaises(NotFoundError):
            services.toggle_qr(4242)


class TableAPITests(POSTestMixin, APITestCase):
    """Table and session endpoints"""

    def setUp(self):
        self.setUpPOS()
        self.authenticate(self.waiter)
        self.table = Table.objects.create(table_number='7', capacity=4)

    def test_open_without_business_day(self):
        """Precondition failures are 400 with an error body"""
        response = self.client.post(
            reverse('open_dine_in', kwargs={'table_id': self.table.id}), {'guest_count': 2}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'precondition_failed')

    def test_open_dine_in_and_conflict(self):
        """Second open on the same table is a 409"""
        open_business_day('500.00', self.owner)
        url = reverse('open_dine_in', kwargs={'table_id': self.table.id})

        response = self.client.post(url, {'guest_count': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['table_number'], '7')

        response = self.client.post(url, {'guest_count': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_board_reports_occupancy(self):
        open_business_day('500.00', self.owner)
        services.open_dine_in(self.table.id, 2, self.waiter)

        response = self.client.get(reverse('table_board'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['tables'][0]['occupied'])
        self.assertEqual(response.data['poll_interval'], 10)

    def test_open_delivery_missing_fields(self):
        """Serializer errors are returned as-is"""
        open_business_day('500.00', self.owner)
        response = self.client.post(reverse('open_delivery'), {'customer_name': 'Mona'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_phone', response.data)
