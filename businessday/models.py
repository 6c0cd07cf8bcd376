from django.db import models
from django.db.models import Q

from epos.models import StaffMember


class BusinessDay(models.Model):
	class Status(models.TextChoices):
		OPEN = 'open', 'Open'
		CLOSED = 'closed', 'Closed'

	TRANSITIONS = {
		Status.OPEN: {Status.CLOSED},
	}

	status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
	opened_at = models.DateTimeField(auto_now_add=True)
	opened_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, related_name='+')
	opening_cash = models.DecimalField(max_digits=10, decimal_places=2, default=0)
	closed_at = models.DateTimeField(null=True, blank=True)
	closed_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, null=True, blank=True, related_name='+')
	closing_cash = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
	expected_cash = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
	cash_difference = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

	class Meta:
		constraints = [
			models.UniqueConstraint(
				fields=['status'],
				condition=Q(status='open'),
				name='one_open_business_day',
			),
		]

	def __str__(self):
		return f"Business day {self.id} ({self.status})"
