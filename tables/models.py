from django.db import models
from django.db.models import Q

from businessday.models import BusinessDay
from epos.models import StaffMember


class Table(models.Model):
	table_number = models.CharField(max_length=20, unique=True)
	capacity = models.PositiveIntegerField(default=4)
	qr_enabled = models.BooleanField(default=True)
	is_active = models.BooleanField(default=True)
	deleted_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ['table_number']

	def __str__(self):
		return f"Table {self.table_number}"


class Session(models.Model):
	class OrderType(models.TextChoices):
		DINE_IN = 'dine_in', 'Dine In'
		TAKEAWAY = 'takeaway', 'Takeaway'
		DELIVERY = 'delivery', 'Delivery'

	class Status(models.TextChoices):
		ACTIVE = 'active', 'Active'
		CLOSED = 'closed', 'Closed'

	TRANSITIONS = {
		Status.ACTIVE: {Status.CLOSED},
	}

	business_day = models.ForeignKey(BusinessDay, on_delete=models.PROTECT, related_name='sessions')
	table = models.ForeignKey(Table, on_delete=models.PROTECT, null=True, blank=True, related_name='sessions')
	order_type = models.CharField(max_length=10, choices=OrderType.choices)
	status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
	customer_name = models.CharField(max_length=100, blank=True, null=True)
	customer_phone = models.CharField(max_length=30, blank=True, null=True)
	customer_address = models.TextField(blank=True, null=True)
	guest_count = models.PositiveIntegerField(null=True, blank=True)
	delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
	opened_at = models.DateTimeField(auto_now_add=True)
	closed_at = models.DateTimeField(null=True, blank=True)
	created_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, related_name='+')

	class Meta:
		constraints = [
			models.UniqueConstraint(
				fields=['table'],
				condition=Q(status='active'),
				name='one_active_session_per_table',
			),
		]

	def __str__(self):
		where = f"Table {self.table.table_number}" if self.table_id else self.get_order_type_display()
		return f"Session {self.id} ({where})"
