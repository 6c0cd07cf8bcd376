from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from .audit import record_audit
from .exceptions import ConflictError, PersistenceError, RateLimitError, ValidationError
from .models import AuditLog, StaffMember
from .money import quantize_money, to_decimal
from .numbering import generate_reference
from .states import ensure_transition


class MoneyTests(SimpleTestCase):
    """Rounding and parsing of amounts"""

    def test_rounds_half_up(self):
        self.assertEqual(quantize_money(Decimal('3.6372')), Decimal('3.64'))
        self.assertEqual(quantize_money(Decimal('0.125')), Decimal('0.13'))
        self.assertEqual(quantize_money(Decimal('0.124')), Decimal('0.12'))

    def test_floats_go_through_str(self):
        self.assertEqual(quantize_money(12.99), Decimal('12.99'))

    def test_to_decimal_rejects_garbage(self):
        for value in (None, '', 'abc', 'NaN', 'Infinity'):
            with self.assertRaises(ValidationError):
                to_decimal(value, 'opening_cash')
        self.assertEqual(to_decimal('7.5'), Decimal('7.5'))


class StateAndNumberingTests(SimpleTestCase):

    def test_illegal_transition(self):
        """Unlisted moves raise with the current status attached"""
        transitions = {'open': {'closed'}}
        ensure_transition('Thing', 'open', 'closed', transitions)

        with self.assertRaises(ConflictError) as caught:
            ensure_transition('Thing', 'closed', 'open', transitions)
        self.assertEqual(caught.exception.extra, {'current_status': 'closed'})

    def test_reference_format(self):
        reference = generate_reference('BILL')
        prefix, timestamp, suffix = reference.split('-')

        self.assertEqual(prefix, 'BILL')
        self.assertTrue(timestamp.isalnum())
        self.assertEqual(len(suffix), 7)
        self.assertNotEqual(reference, generate_reference('BILL'))


class ErrorPayloadTests(SimpleTestCase):

    def test_payload_carries_extra_fields(self):
        error = RateLimitError(retry_after=42)
        self.assertEqual(error.status_code, 429)
        self.assertEqual(error.as_payload(), {
            'error': 'Rate limit exceeded. Please wait before submitting another order.',
            'code': 'rate_limited',
            'retry_after': 42,
        })

    def test_persistence_error_names_step(self):
        error = PersistenceError(step='record_payment')
        self.assertEqual(error.status_code, 500)
        self.assertEqual(error.as_payload()['step'], 'record_payment')


class AuditTests(TestCase):

    def test_record_audit(self):
        actor = StaffMember.objects.create(name="Owner", role='owner', api_key='k')
        record_audit('business_day_opened', 'business_days', 7, {'opening_cash': '500.00'}, actor=actor)

        entry = AuditLog.objects.get()
        self.assertEqual(entry.record_id, '7')
        self.assertEqual(entry.details, {'opening_cash': '500.00'})
        self.assertEqual(entry.actor, actor)


class APIKeyAuthenticationTests(APITestCase):
    """Staff keys"""

    def setUp(self):
        self.staff = StaffMember.objects.create(name="Cashier", role='cashier', api_key='active-key')
        StaffMember.objects.create(name="Former", role='cashier', api_key='old-key', is_active=False)

    def test_active_key_accepted(self):
        response = self.client.get(reverse('current_business_day'), HTTP_X_API_KEY='active-key')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_inactive_staff_rejected(self):
        response = self.client.get(reverse('current_business_day'), HTTP_X_API_KEY='old-key')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
