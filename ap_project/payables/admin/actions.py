from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from payables.services import void_bill
from payables.tasks import recompute_bill_statuses_task

# ---------- Admin actions ----------


@admin.action(description="Void selected bills")
def void_selected_bills(
    modeladmin,  # `ModelAdmin` class for Bill
    request,  # HTTP request object
    queryset,  # records the admin selected from the list view
):
    """
    Void each selected bill through the bill service, so the period guard
    and the must-unapply-first rule apply exactly as they do for the API.
    Each bill runs in its own transaction; failures are reported per bill.
    """
    success = 0
    failures = 0
    for bill in queryset.select_related("business"):
        try:
            void_bill(bill.business, bill.pk, reason="Voided from admin", user=request.user)
            success += 1
        except ValidationError as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not void bill %(pk)s: %(err)s") % {"pk": bill.pk, "err": "; ".join(exc.messages)},
                level=messages.ERROR,
            )

    # Final summary message
    modeladmin.message_user(
        request,
        _("Voided %(success)d of %(total)d bills. %(failures)d failed.") % {
            "success": success,
            "total": success + failures,
            "failures": failures,
        },
        level=messages.SUCCESS if failures == 0 else messages.WARNING,
    )


@admin.action(description="Recompute bill statuses")
def recompute_statuses(modeladmin, request, queryset):
    # queue one repair job per business touched by the selection
    business_ids = sorted(set(queryset.values_list("business_id", flat=True)))
    for business_id in business_ids:
        recompute_bill_statuses_task.delay(business_id)
    modeladmin.message_user(
        request,
        _("Queued status recompute for %(n)d business(es).") % {"n": len(business_ids)},
        level=messages.SUCCESS,
    )
