from decimal import Decimal
from unittest import mock

from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from epos.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from epos.models import AuditLog
from epos.testing import POSTestMixin
from .models import BusinessDay
from . import services


class BusinessDayLedgerTests(POSTestMixin, TestCase):
    """Open/close lifecycle of the business day"""

    def setUp(self):
        self.setUpPOS()

    def test_open_business_day(self):
        """Opening creates the single open day"""
        day = services.open_business_day('500.00', self.owner)

        self.assertEqual(day.status, BusinessDay.Status.OPEN)
        self.assertEqual(day.opening_cash, Decimal('500.00'))
        self.assertEqual(services.current_business_day(), day)
        self.assertTrue(AuditLog.objects.filter(action='business_day_opened').exists())

    def test_second_open_conflicts(self):
        """Only one business day may be open"""
        services.open_business_day('500.00', self.owner)

        with self.assertRaises(ConflictError):
            services.open_business_day('100.00', self.cashier)
        self.assertEqual(BusinessDay.objects.filter(status='open').count(), 1)

    def test_concurrent_open_hits_unique_constraint(self):
        """A racing open that passed the pre-check is rejected by the database"""
        services.open_business_day('500.00', self.owner)

        with mock.patch('businessday.services.current_business_day', return_value=None):
            with self.assertRaises(ConflictError):
                services.open_business_day('100.00', self.cashier)
        self.assertEqual(BusinessDay.objects.filter(status='open').count(), 1)

    def test_database_rejects_two_open_days(self):
        """The partial unique constraint holds without the service"""
        BusinessDay.objects.create(opened_by=self.owner)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                BusinessDay.objects.create(opened_by=self.cashier)

    def test_negative_opening_cash_rejected(self):
        with self.assertRaises(ValidationError):
            services.open_business_day('-1', self.owner)

    def test_close_computes_cash_difference(self):
        """expected_cash is the opening float; difference is closing minus expected"""
        day = services.open_business_day('500.00', self.owner)

        closed = services.close_business_day(day.id, '480.50', self.owner)

        self.assertEqual(closed.status, BusinessDay.Status.CLOSED)
        self.assertEqual(closed.expected_cash, Decimal('500.00'))
        self.assertEqual(closed.cash_difference, Decimal('-19.50'))
        self.assertEqual(closed.closed_by, self.owner)
        self.assertIsNone(services.current_business_day())

    def test_close_is_terminal(self):
        """A closed day cannot be closed again"""
        day = services.open_business_day('500.00', self.owner)
        services.close_business_day(day.id, '500.00', self.owner)

        with self.assertRaises(NotFoundError):
            services.close_business_day(day.id, '500.00', self.owner)

    def test_close_unknown_day(self):
        with self.assertRaises(NotFoundError):
            services.close_business_day(12345, '0', self.owner)

    def test_require_open_business_day(self):
        """Writes are gated on an open day"""
        with self.assertRaises(PreconditionError):
            services.require_open_business_day()

    def test_reopen_after_close_creates_new_day(self):
        """Closing frees the slot for the next day"""
        day = services.open_business_day('500.00', self.owner)
        services.close_business_day(day.id, '500.00', self.owner)

        next_day = services.open_business_day('300.00', self.owner)

        self.assertNotEqual(next_day.id, day.id)


class BusinessDayAPITests(POSTestMixin, APITestCase):
    """Business day endpoints"""

    def setUp(self):
        self.setUpPOS()
        self.authenticate(self.cashier)

    def test_open_and_close_day(self):
        """Open, read and close through the API"""
        response = self.client.post(reverse('open_business_day'), {'opening_cash': '500.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        day_id = response.data['id']

        response = self.client.get(reverse('current_business_day'))
        self.assertEqual(response.data['business_day']['id'], day_id)

        response = self.client.post(
            reverse('close_business_day', kwargs={'day_id': day_id}), {'closing_cash': '520.00'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['cash_difference'], '20.00')

    def test_double_open_returns_conflict(self):
        """Second open is a 409 with an error body"""
        self.client.post(reverse('open_business_day'), {'opening_cash': '500.00'}, format='json')
        response = self.client.post(reverse('open_business_day'), {'opening_cash': '500.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'conflict')
        self.assertIn('error', response.data)

    def test_requires_api_key(self):
        """Staff endpoints reject anonymous callers"""
        self.client.defaults.pop('HTTP_X_API_KEY')
        response = self.client.get(reverse('current_business_day'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_api_key(self):
        self.client.defaults['HTTP_X_API_KEY'] = 'nope'
        response = self.client.get(reverse('current_business_day'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
