from django.db import models

from billing.models import Bill
from businessday.models import BusinessDay
from epos.models import StaffMember


class Payment(models.Model):
	class Method(models.TextChoices):
		CASH = 'cash', 'Cash'
		CARD = 'card', 'Card'
		BANK_TRANSFER = 'bank_transfer', 'Bank Transfer'
		MOBILE_WALLET = 'mobile_wallet', 'Mobile Wallet'

	bill = models.ForeignKey(Bill, on_delete=models.PROTECT, related_name='payments')
	business_day = models.ForeignKey(BusinessDay, on_delete=models.PROTECT, related_name='payments')
	payment_method = models.CharField(max_length=20, choices=Method.choices)
	# Amount tendered by the customer, including any change given back
	amount = models.DecimalField(max_digits=10, decimal_places=2)
	created_by = models.ForeignKey(StaffMember, on_delete=models.PROTECT, related_name='+')
	created_at = models.DateTimeField(auto_now_add=True)

	def __str__(self):
		return f"Payment {self.id} for Bill {self.bill.bill_number} - {self.payment_method}"
