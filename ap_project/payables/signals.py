from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .exceptions import MustUnapplyFirstError
from .models import Bill, BillPaymentAllocation, Entry

""" Block hard deletes of bills with applied payments."""


# pre_delete fires just before Django deletes the instance,
# including deletes from the admin and cascades
@receiver(pre_delete, sender=Bill)
def prevent_delete_bill_with_payments(sender, instance, **kwargs):
    if BillPaymentAllocation.objects.active().filter(bill=instance).exists():
        raise MustUnapplyFirstError(bill_id=instance.pk)


"""Block hard deletes of entries that still pay a bill."""


@receiver(pre_delete, sender=Entry)
def prevent_delete_entry_with_payments(sender, instance, **kwargs):
    if BillPaymentAllocation.objects.active().filter(entry=instance).exists():
        raise MustUnapplyFirstError(entry_id=instance.pk)
