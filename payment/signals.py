import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent after a bill is settled; kwargs: bill, receipt
bill_paid = Signal()


@receiver(bill_paid)
def log_receipt(sender, bill, receipt, **kwargs):
    logger.info("Receipt %s: total=%s paid=%s change=%s",
                receipt['bill_number'], receipt['total'], bill.paid_amount, bill.change_amount)
