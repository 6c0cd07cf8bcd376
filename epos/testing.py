"""Shared setup for the app test suites"""
from decimal import Decimal
from unittest import mock

import fakeredis

from catalog.models import Category, MenuItem
from epos.models import StaffMember


class POSTestMixin:
    """
    Creates staff members and swaps Redis for an isolated in-memory server.

    Call ``setUpPOS()`` from ``setUp``.
    """

    def setUpPOS(self):
        self.redis = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
        patcher = mock.patch('orders.guards.get_redis_client', return_value=self.redis)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.owner = StaffMember.objects.create(name="Owner", role='owner', api_key='owner-key')
        self.cashier = StaffMember.objects.create(name="Cashier", role='cashier', api_key='cashier-key')
        self.waiter = StaffMember.objects.create(name="Waiter", role='waiter', api_key='waiter-key')
        self.category = Category.objects.create(name="Mains")

    def create_menu_item(self, name="Shawarma Plate", price='12.99', **kwargs):
        return MenuItem.objects.create(category=self.category, name=name, price=Decimal(price), **kwargs)

    def authenticate(self, staff):
        self.client.defaults['HTTP_X_API_KEY'] = staff.api_key

    def printed_session(self, table_number='12', quantity=2, item=None):
        """Seat a table, add a manual order and send it to the kitchen. Needs an open business day."""
        from orders.intake import create_manual_order
        from orders.kitchen import print_order
        from tables.models import Table
        from tables.services import open_dine_in

        item = item or self.create_menu_item()
        table = Table.objects.create(table_number=table_number, capacity=4)
        session = open_dine_in(table.id, 2, self.waiter)
        order = create_manual_order(session.id, self.cashier, [{'menu_item_id': item.id, 'quantity': quantity}])
        print_order(order.id, self.cashier)
        return session

    def track_calls(self, target, real, calls):
        """Patch ``target`` so each call appends its name to ``calls`` and then runs ``real``."""
        name = target.rsplit('.', 1)[1]
        patcher = mock.patch(target, side_effect=lambda *args, **kwargs: calls.append(name) or real(*args, **kwargs))
        patcher.start()
        self.addCleanup(patcher.stop)
