from django.db import models

from businessday.models import BusinessDay
from epos.models import StaffMember
from tables.models import Session


class Bill(models.Model):
	session = models.OneToOneField(Session, on_delete=models.PROTECT, related_name='bill')
	business_day = models.ForeignKey(BusinessDay, on_delete=models.PROTECT, related_name='bills')
	bill_number = models.CharField(max_length=40, unique=True)
	subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=0)
	discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
	# Set when the discount was entered as a percentage; the amount is then derived
	discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
	tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
	tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
	delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
	total = models.DecimalField(max_digits=10, decimal_places=2, default=0)
	is_paid = models.BooleanField(default=False)
	paid_at = models.DateTimeField(null=True, blank=True)
	paid_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
	change_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
	created_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, related_name='+')
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	def __str__(self):
		return f"Bill {self.bill_number} - {self.total}"
