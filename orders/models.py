from django.db import models

from businessday.models import BusinessDay
from catalog.models import MenuItem, Modifier
from epos.models import StaffMember
from tables.models import Session


class Order(models.Model):
	class Source(models.TextChoices):
		MANUAL = 'manual', 'Manual'
		QR = 'qr', 'QR'

	class Status(models.TextChoices):
		PENDING = 'pending', 'Pending'
		ACCEPTED = 'accepted', 'Accepted'
		REJECTED = 'rejected', 'Rejected'
		PRINTED = 'printed', 'Printed'
		PAID = 'paid', 'Paid'
		CANCELLED = 'cancelled', 'Cancelled'

	TRANSITIONS = {
		Status.PENDING: {Status.ACCEPTED, Status.REJECTED, Status.CANCELLED},
		Status.ACCEPTED: {Status.PRINTED, Status.CANCELLED},
		Status.PRINTED: {Status.PAID},
	}

	# Orders in these states are on the bill
	BILLABLE_STATUSES = (Status.PRINTED, Status.PAID)

	session = models.ForeignKey(Session, on_delete=models.PROTECT, related_name='orders')
	business_day = models.ForeignKey(BusinessDay, on_delete=models.PROTECT, related_name='orders')
	order_number = models.CharField(max_length=40, unique=True)
	source = models.CharField(max_length=10, choices=Source.choices)
	status = models.CharField(max_length=10, choices=Status.choices)
	notes = models.TextField(blank=True, null=True)
	source_ip = models.CharField(max_length=64, blank=True, null=True)
	created_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, null=True, blank=True, related_name='+')
	created_at = models.DateTimeField(auto_now_add=True)
	accepted_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, null=True, blank=True, related_name='+')
	accepted_at = models.DateTimeField(null=True, blank=True)
	rejected_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, null=True, blank=True, related_name='+')
	rejected_at = models.DateTimeField(null=True, blank=True)
	rejection_reason = models.CharField(max_length=200, blank=True, null=True)
	printed_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, null=True, blank=True, related_name='+')
	printed_at = models.DateTimeField(null=True, blank=True)
	cancelled_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ['created_at', 'id']

	def __str__(self):
		return f"Order {self.order_number} ({self.status})"


class OrderItem(models.Model):
	order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
	menu_item = models.ForeignKey(MenuItem, on_delete=models.PROTECT)
	quantity = models.PositiveIntegerField()
	unit_price = models.DecimalField(max_digits=10, decimal_places=2)
	subtotal = models.DecimalField(max_digits=10, decimal_places=2)
	notes = models.TextField(blank=True, null=True)

	def __str__(self):
		return f"{self.quantity} x {self.menu_item.name} for Order {self.order.order_number}"


class OrderItemModifier(models.Model):
	order_item = models.ForeignKey(OrderItem, on_delete=models.CASCADE, related_name='modifiers')
	modifier = models.ForeignKey(Modifier, on_delete=models.PROTECT)
	quantity = models.PositiveIntegerField(default=1)
	price_adjustment = models.DecimalField(max_digits=10, decimal_places=2, default=0)

	def __str__(self):
		return f"{self.modifier.name} on {self.order_item_id}"
