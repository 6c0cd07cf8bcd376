from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, SimpleTestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from businessday.services import open_business_day, close_business_day
from catalog.models import ModifierGroup, Modifier
from epos.exceptions import (
    ConflictError, DuplicateError, NotFoundError, PersistenceError, PreconditionError, RateLimitError,
    ValidationError
)
from epos.models import AuditLog
from epos.testing import POSTestMixin
from tables.models import Table
from billing.services import recompute_bill
from tables.services import open_dine_in, close_session, lock_session
from .guards import QrSubmissionGuard
from .models import Order, OrderItem
from .qr_client import QrOrderClient, QrOrderError, SubmissionDebounced
from . import intake, kitchen, services


class OrderFixtureMixin(POSTestMixin):

    def setUpOrders(self):
        self.setUpPOS()
        self.business_day = open_business_day('500.00', self.owner)
        self.table = Table.objects.create(table_number='5', capacity=4)
        self.session = open_dine_in(self.table.id, 2, self.waiter)
        self.item = self.create_menu_item()
        self.guard = QrSubmissionGuard(self.redis)

    def submit(self, request_id, ip='10.0.0.1', table_number='5', quantity=1):
        return intake.submit_qr_order(
            table_number,
            [{'menu_item_id': self.item.id, 'quantity': quantity}],
            client_request_id=request_id,
            source_ip=ip,
            guard=self.guard,
        )


class ItemValidationTests(SimpleTestCase):
    """Structural checks on submitted items"""

    def test_rejects_empty_and_non_list(self):
        for items in ([], None, {'menu_item_id': 1, 'quantity': 1}):
            with self.assertRaises(ValidationError):
                intake.validate_items(items)

    def test_rejects_too_many_lines(self):
        """At most 20 lines per order"""
        items = [{'menu_item_id': 1, 'quantity': 1}] * 21
        with self.assertRaises(ValidationError) as caught:
            intake.validate_items(items)
        self.assertEqual(caught.exception.message, 'Maximum 20 items per order')

    def test_quantity_bounds(self):
        """Quantity must be an integer between 1 and 20"""
        for quantity in (0, 21, -1, 'two', True, 1.5, None):
            with self.assertRaises(ValidationError):
                intake.validate_items([{'menu_item_id': 1, 'quantity': quantity}])

        normalized = intake.validate_items([{'menu_item_id': 1, 'quantity': 20}])
        self.assertEqual(normalized[0]['quantity'], 20)

    def test_submitted_price_is_dropped(self):
        """Client prices never survive normalization"""
        normalized = intake.validate_items([{'menu_item_id': '3', 'quantity': 2, 'price': '0.01', 'notes': ' hot '}])
        self.assertEqual(normalized, [{'menu_item_id': 3, 'quantity': 2, 'notes': 'hot', 'modifiers': []}])

    def test_modifiers_must_be_ids(self):
        with self.assertRaises(ValidationError):
            intake.validate_items([{'menu_item_id': 1, 'quantity': 1, 'modifiers': 'extra cheese'}])
        with self.assertRaises(ValidationError):
            intake.validate_items([{'menu_item_id': 1, 'quantity': 1, 'modifiers': ['x']}])

    def test_ids_beyond_database_range(self):
        """Ids too large for a 64-bit key fail the structural check"""
        for menu_item_id in (2 ** 63, 10 ** 20, 1e20, float('inf')):
            with self.assertRaises(ValidationError):
                intake.validate_items([{'menu_item_id': menu_item_id, 'quantity': 1}])
        with self.assertRaises(ValidationError):
            intake.validate_items([{'menu_item_id': 1, 'quantity': 1, 'modifiers': [10 ** 20]}])

        normalized = intake.validate_items([{'menu_item_id': 2 ** 63 - 1, 'quantity': 1}])
        self.assertEqual(normalized[0]['menu_item_id'], 2 ** 63 - 1)


class ManualOrderTests(OrderFixtureMixin, TestCase):
    """Staff entered orders"""

    def setUp(self):
        self.setUpOrders()

    def test_manual_order_is_accepted_with_price_snapshot(self):
        """Lines carry the menu price at order time"""
        order = intake.create_manual_order(
            self.session.id, self.cashier, [{'menu_item_id': self.item.id, 'quantity': 2}]
        )

        self.assertEqual(order.status, Order.Status.ACCEPTED)
        self.assertEqual(order.source, Order.Source.MANUAL)
        self.assertEqual(order.accepted_by, self.cashier)
        self.assertTrue(order.order_number.startswith('ORD-'))
        line = order.items.get()
        self.assertEqual(line.unit_price, Decimal('12.99'))
        self.assertEqual(line.subtotal, Decimal('25.98'))

        self.item.price = Decimal('15.00')
        self.item.save()
        line.refresh_from_db()
        self.assertEqual(line.unit_price, Decimal('12.99'))

    def test_unavailable_item_rejected_before_insert(self):
        """Nothing is written when an item cannot be ordered"""
        self.item.is_available = False
        self.item.save()

        with self.assertRaises(ValidationError) as caught:
            intake.create_manual_order(self.session.id, self.cashier, [{'menu_item_id': self.item.id, 'quantity': 1}])

        self.assertEqual(caught.exception.message, f"Menu item {self.item.id} is not available")
        self.assertFalse(Order.objects.exists())

    def test_closed_session_rejects_orders(self):
        close_session(self.session)
        with self.assertRaises(PreconditionError):
            intake.create_manual_order(self.session.id, self.cashier, [{'menu_item_id': self.item.id, 'quantity': 1}])

    def test_closed_business_day_rejects_orders(self):
        """A session left open past day close takes no new orders"""
        close_business_day(self.business_day.id, '500.00', self.owner)
        with self.assertRaises(PreconditionError):
            intake.create_manual_order(self.session.id, self.cashier, [{'menu_item_id': self.item.id, 'quantity': 1}])

    def test_unknown_session(self):
        with self.assertRaises(NotFoundError):
            intake.create_manual_order(9999, self.cashier, [{'menu_item_id': self.item.id, 'quantity': 1}])

    def test_failed_line_insert_cancels_order(self):
        """An order whose lines cannot be written is kept as cancelled"""
        with mock.patch('orders.intake._insert_lines', side_effect=DatabaseError("disk full")):
            with self.assertRaises(PersistenceError) as caught:
                intake.create_manual_order(
                    self.session.id, self.cashier, [{'menu_item_id': self.item.id, 'quantity': 1}]
                )

        self.assertEqual(caught.exception.extra['step'], 'order_items')
        order = Order.objects.get()
        self.assertEqual(order.status, Order.Status.CANCELLED)
        self.assertIsNotNone(order.cancelled_at)
        self.assertFalse(OrderItem.objects.exists())


class ModifierPricingTests(OrderFixtureMixin, TestCase):
    """Modifier selection rules and pricing"""

    def setUp(self):
        self.setUpOrders()
        self.group = ModifierGroup.objects.create(name="Bread", min_selections=1, max_selections=1, is_required=True)
        self.group.menu_items.add(self.item)
        self.saj = Modifier.objects.create(group=self.group, name="Saj", price_adjustment=Decimal('1.50'))
        self.pita = Modifier.objects.create(group=self.group, name="Pita")

    def test_modifier_adjustment_is_snapshot_only(self):
        """Line subtotal is unit price times quantity; adjustments are kept on the modifier line"""
        order = intake.create_manual_order(
            self.session.id, self.cashier,
            [{'menu_item_id': self.item.id, 'quantity': 2, 'modifiers': [self.saj.id]}]
        )

        line = order.items.get()
        self.assertEqual(line.unit_price, Decimal('12.99'))
        self.assertEqual(line.subtotal, Decimal('25.98'))
        self.assertEqual(line.subtotal, line.unit_price * line.quantity)
        self.assertEqual(line.modifiers.get().price_adjustment, Decimal('1.50'))

    def test_required_group_must_be_chosen(self):
        with self.assertRaises(ValidationError):
            intake.create_manual_order(self.session.id, self.cashier, [{'menu_item_id': self.item.id, 'quantity': 1}])

    def test_group_maximum(self):
        with self.assertRaises(ValidationError):
            intake.create_manual_order(
                self.session.id, self.cashier,
                [{'menu_item_id': self.item.id, 'quantity': 1, 'modifiers': [self.saj.id, self.pita.id]}]
            )

    def test_foreign_modifier_rejected(self):
        """Modifiers of other items cannot be attached"""
        other = ModifierGroup.objects.create(name="Sauce")
        garlic = Modifier.objects.create(group=other, name="Garlic")
        with self.assertRaises(ValidationError):
            intake.create_manual_order(
                self.session.id, self.cashier,
                [{'menu_item_id': self.item.id, 'quantity': 1, 'modifiers': [self.pita.id, garlic.id]}]
            )


class QrOrderTests(OrderFixtureMixin, TestCase):
    """Anonymous QR intake"""

    def setUp(self):
        self.setUpOrders()

    def test_qr_order_is_pending(self):
        """QR orders wait for staff and are audited"""
        order = self.submit('req-1')

        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertEqual(order.source, Order.Source.QR)
        self.assertEqual(order.session, self.session)
        self.assertEqual(order.source_ip, '10.0.0.1')
        self.assertTrue(order.order_number.startswith('QR-'))
        audit = AuditLog.objects.get(action='qr_order_submitted')
        self.assertEqual(audit.record_id, str(order.id))
        self.assertEqual(audit.details['table_number'], '5')
        self.assertEqual(audit.details['items_count'], 1)

    def test_duplicate_request_id(self):
        """The same clientRequestId produces exactly one order"""
        self.submit('req-1')
        with self.assertRaises(DuplicateError):
            self.submit('req-1')
        self.assertEqual(Order.objects.count(), 1)

    def test_request_id_expires(self):
        """The id key is kept for five minutes"""
        self.submit('req-1')
        ttl = self.redis.ttl('qr_request:req-1')
        self.assertGreater(ttl, 0)
        self.assertLessEqual(ttl, 300)

    def test_rate_limit_per_ip_and_table(self):
        """The fourth submission inside a minute is refused"""
        for n in range(3):
            self.submit(f'req-{n}')

        with self.assertRaises(RateLimitError) as caught:
            self.submit('req-3')

        self.assertEqual(Order.objects.count(), 3)
        self.assertGreater(caught.exception.extra['retry_after'], 0)
        self.assertLessEqual(caught.exception.extra['retry_after'], 60)

    def test_rate_limit_is_keyed_by_ip(self):
        """Another device at the same table has its own window"""
        for n in range(3):
            self.submit(f'req-{n}')

        order = self.submit('req-other', ip='10.0.0.2')

        self.assertEqual(order.status, Order.Status.PENDING)

    def test_unknown_table(self):
        with self.assertRaises(NotFoundError):
            self.submit('req-1', table_number='404')

    def test_qr_disabled_table(self):
        self.table.qr_enabled = False
        self.table.save()
        with self.assertRaises(PreconditionError) as caught:
            self.submit('req-1')
        self.assertEqual(caught.exception.message, 'QR ordering is not enabled for this table')

    def test_table_without_session(self):
        """QR orders never open a session"""
        close_session(self.session)
        with self.assertRaises(PreconditionError) as caught:
            self.submit('req-1')
        self.assertEqual(caught.exception.message, 'No active session for this table. Please contact staff.')
        self.assertFalse(Order.objects.exists())

    def test_price_comes_from_menu(self):
        """A tampered price in the payload is ignored"""
        order = intake.submit_qr_order(
            '5', [{'menu_item_id': self.item.id, 'quantity': 2, 'price': '0.01'}],
            client_request_id='req-1', source_ip='10.0.0.1', guard=self.guard,
        )
        self.assertEqual(order.items.get().subtotal, Decimal('25.98'))

    def test_invalid_items_do_not_consume_request_id(self):
        """Structure is checked before the id is claimed"""
        with self.assertRaises(ValidationError):
            intake.submit_qr_order('5', [], client_request_id='req-1', guard=self.guard)
        self.assertIsNone(self.redis.get('qr_request:req-1'))

    def test_oversized_item_id_is_a_validation_error(self):
        """An id outside the key range is rejected before any guard or query runs"""
        with self.assertRaises(ValidationError):
            intake.submit_qr_order(
                '5', [{'menu_item_id': 10 ** 20, 'quantity': 1}],
                client_request_id='req-big', source_ip='10.0.0.1', guard=self.guard,
            )
        self.assertIsNone(self.redis.get('qr_request:req-big'))
        self.assertIsNone(self.redis.get('qr_rate:10.0.0.1:5'))
        self.assertFalse(Order.objects.exists())


class OrderWorkflowTests(OrderFixtureMixin, TestCase):
    """Accept, reject and print"""

    def setUp(self):
        self.setUpOrders()
        self.order = self.submit('req-1', quantity=2)

    def test_accept_then_print(self):
        """Printing produces a kitchen ticket"""
        services.accept_order(self.order.id, self.cashier)
        order, ticket = kitchen.print_order(self.order.id, self.cashier)

        self.assertEqual(order.status, Order.Status.PRINTED)
        self.assertEqual(order.printed_by, self.cashier)
        self.assertEqual(ticket['order_number'], self.order.order_number)
        self.assertEqual(ticket['table_number'], '5')
        self.assertEqual(ticket['items'], [
            {'quantity': 2, 'item_name': 'Shawarma Plate', 'modifiers': [], 'notes': None}
        ])
        accepted = AuditLog.objects.get(action='order_accepted')
        self.assertEqual(accepted.record_id, str(self.order.id))
        self.assertEqual(accepted.actor, self.cashier)

    def test_print_emits_signal(self):
        received = []

        def receiver(sender, order, ticket, **kwargs):
            received.append(ticket['order_number'])

        kitchen.order_printed.connect(receiver)
        self.addCleanup(kitchen.order_printed.disconnect, receiver)
        services.accept_order(self.order.id, self.cashier)
        kitchen.print_order(self.order.id, self.cashier)

        self.assertEqual(received, [self.order.order_number])

    def test_print_locks_session_before_order_and_bill(self):
        """Printing takes the session lock before touching the order or its bill"""
        calls = []
        self.track_calls('orders.kitchen.lock_session', lock_session, calls)
        self.track_calls('orders.kitchen.lock_order', services.lock_order, calls)
        self.track_calls('orders.kitchen.recompute_bill', recompute_bill, calls)
        services.accept_order(self.order.id, self.cashier)

        kitchen.print_order(self.order.id, self.cashier)

        self.assertEqual(calls, ['lock_session', 'lock_order', 'recompute_bill'])

    def test_print_unknown_order(self):
        with self.assertRaises(NotFoundError):
            kitchen.print_order(9999, self.cashier)

    def test_pending_order_cannot_be_printed(self):
        with self.assertRaises(ConflictError):
            kitchen.print_order(self.order.id, self.cashier)

    def test_reject_is_terminal(self):
        """Rejected orders cannot be accepted later"""
        order = services.reject_order(self.order.id, self.waiter, reason="Kitchen closed")
        self.assertEqual(order.rejection_reason, "Kitchen closed")
        rejected = AuditLog.objects.get(action='order_rejected')
        self.assertEqual(rejected.details['reason'], "Kitchen closed")
        self.assertEqual(rejected.actor, self.waiter)

        with self.assertRaises(ConflictError):
            services.accept_order(self.order.id, self.cashier)

    def test_accept_twice(self):
        services.accept_order(self.order.id, self.cashier)
        with self.assertRaises(ConflictError):
            services.accept_order(self.order.id, self.cashier)

    def test_pending_list(self):
        """Only pending QR orders of the open day are listed"""
        manual = intake.create_manual_order(self.session.id, self.cashier, [{'menu_item_id': self.item.id, 'quantity': 1}])
        pending = list(services.list_pending_qr_orders())

        self.assertEqual(pending, [self.order])
        self.assertNotIn(manual, pending)


class OrderAPITests(OrderFixtureMixin, APITestCase):
    """Order endpoints"""

    def setUp(self):
        self.setUpOrders()

    def qr_payload(self, request_id):
        return {
            'tableNumber': '5',
            'items': [{'menu_item_id': self.item.id, 'quantity': 1}],
            'clientRequestId': request_id,
        }

    def test_qr_submission_is_anonymous(self):
        response = self.client.post(reverse('qr_order'), self.qr_payload('a'), format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertTrue(response.data['orderNumber'].startswith('QR-'))
        self.assertEqual(Order.objects.get().source_ip, '127.0.0.1')

    def test_qr_duplicate_is_409(self):
        self.client.post(reverse('qr_order'), self.qr_payload('a'), format='json')
        response = self.client.post(reverse('qr_order'), self.qr_payload('a'), format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Duplicate request')
        self.assertEqual(Order.objects.count(), 1)

    def test_qr_rate_limit_is_429(self):
        for request_id in ('a', 'b', 'c'):
            response = self.client.post(reverse('qr_order'), self.qr_payload(request_id), format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(reverse('qr_order'), self.qr_payload('d'), format='json')

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertIn('retry_after', response.data)

    def test_qr_forwarded_ip(self):
        """The first X-Forwarded-For address is the caller"""
        self.client.post(reverse('qr_order'), self.qr_payload('a'), format='json',
                         HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1')
        self.assertEqual(Order.objects.get().source_ip, '203.0.113.9')

    def test_qr_missing_table_number(self):
        response = self.client.post(reverse('qr_order'), {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tableNumber', response.data)

    def test_manual_order_print_flow(self):
        """Staff add, print and reprint an order"""
        self.authenticate(self.cashier)
        response = self.client.post(
            reverse('create_manual_order', kwargs={'session_id': self.session.id}),
            {'items': [{'menu_item_id': self.item.id, 'quantity': 2}]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'accepted')
        order_id = response.data['id']

        response = self.client.get(reverse('kitchen_ticket', kwargs={'order_id': order_id}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(reverse('print_order', kwargs={'order_id': order_id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order']['status'], 'printed')
        self.assertEqual(response.data['kitchen_ticket']['items'][0]['quantity'], 2)

        response = self.client.get(reverse('kitchen_ticket', kwargs={'order_id': order_id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_pending_orders_and_reject(self):
        self.submit('req-1')
        self.authenticate(self.waiter)

        response = self.client.get(reverse('pending_orders'))
        self.assertEqual(len(response.data['orders']), 1)
        order_id = response.data['orders'][0]['id']

        response = self.client.post(reverse('reject_order', kwargs={'order_id': order_id}),
                                    {'reason': 'Out of stock'}, format='json')
        self.assertEqual(response.data['status'], 'rejected')

        response = self.client.post(reverse('accept_order', kwargs={'order_id': order_id}))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['current_status'], 'rejected')

    def test_staff_endpoints_need_key(self):
        response = self.client.get(reverse('pending_orders'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class FakeResponse:

    def __init__(self, status_code, body):
        self.status_code = status_code
        self.body = body

    def json(self):
        return self.body


class FakeSession:

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json))
        return self.responses.pop(0)


class QrOrderClientTests(SimpleTestCase):
    """Customer-side submission client"""

    def setUp(self):
        self.now = 100.0
        self.http = FakeSession([
            FakeResponse(200, {'success': True, 'orderNumber': 'QR-1'}),
            FakeResponse(429, {'error': 'Rate limit exceeded'}),
        ])
        self.qr_client = QrOrderClient('http://pos.local/', session=self.http, clock=lambda: self.now)

    def test_submit_posts_payload(self):
        body = self.qr_client.submit(5, [{'menu_item_id': 1, 'quantity': 1}], client_request_id='abc')

        self.assertEqual(body['orderNumber'], 'QR-1')
        url, payload = self.http.calls[0]
        self.assertEqual(url, 'http://pos.local/api/orders/')
        self.assertEqual(payload['tableNumber'], '5')
        self.assertEqual(payload['clientRequestId'], 'abc')

    def test_generates_request_id(self):
        self.qr_client.submit('5', [{'menu_item_id': 1, 'quantity': 1}])
        self.assertTrue(self.http.calls[0][1]['clientRequestId'])

    def test_debounce_within_two_seconds(self):
        """A second tap inside the interval never reaches the server"""
        self.qr_client.submit('5', [{'menu_item_id': 1, 'quantity': 1}])
        self.now += 1.5

        with self.assertRaises(SubmissionDebounced):
            self.qr_client.submit('5', [{'menu_item_id': 1, 'quantity': 1}])
        self.assertEqual(len(self.http.calls), 1)

    def test_server_errors_are_raised(self):
        self.qr_client.submit('5', [{'menu_item_id': 1, 'quantity': 1}])
        self.now += 2.5

        with self.assertRaises(QrOrderError) as caught:
            self.qr_client.submit('5', [{'menu_item_id': 1, 'quantity': 1}])

        self.assertEqual(caught.exception.status_code, 429)
        self.assertEqual(caught.exception.name, 'RateLimitError')
        self.assertEqual(str(caught.exception), 'Rate limit exceeded')
