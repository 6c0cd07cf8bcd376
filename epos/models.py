from django.db import models


class StaffMember(models.Model):
	ROLE_CHOICES = [
		('owner', 'Owner'),
		('cashier', 'Cashier'),
		('waiter', 'Waiter'),
	]

	name = models.CharField(max_length=100)
	role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='cashier')
	api_key = models.CharField(max_length=64, unique=True)
	is_active = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)

	# DRF treats the authenticated staff member as request.user
	is_authenticated = True

	def __str__(self):
		return f"{self.name} ({self.role})"


class AuditLog(models.Model):
	action = models.CharField(max_length=50)
	entity = models.CharField(max_length=50)
	record_id = models.CharField(max_length=64)
	details = models.JSONField(default=dict, blank=True)
	actor = models.ForeignKey(StaffMember, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_entries')
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['-created_at', '-id']

	def __str__(self):
		return f"{self.action} {self.entity}:{self.record_id}"
