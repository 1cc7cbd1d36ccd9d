import json
import logging
from functools import wraps

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_http_methods

from . import services
from .exceptions import InvalidRequestError, NotFoundError, PayablesError
from .models import Business
from .permissions import require_member, require_write
from .services.bills import serialize_bill
from .services.payment import serialize_entry

logger = logging.getLogger(__name__)


def _json_body(request):
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise InvalidRequestError("Request body must be JSON.")
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object.")
    return body


def _id_list(raw, field):
    if not raw:
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise InvalidRequestError(f"{field} must be comma separated ids", field=field)


def ap_view(write=False):
    """
    Resolve the business, check membership (and write role for mutations),
    then call the view with the business. Service errors become JSON.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(request, business_id, *args, **kwargs):
            try:
                business = Business.objects.filter(pk=business_id).first()
                if business is None:
                    raise NotFoundError("Business not found", business_id=business_id)
                if write:
                    require_write(business, request.user)
                else:
                    require_member(business, request.user)
                return view(request, business, *args, **kwargs)
            except PayablesError as e:
                return JsonResponse(e.to_payload(), status=e.status)
            except PermissionDenied as e:
                return JsonResponse(
                    {"ok": False, "error": "FORBIDDEN", "message": str(e)}, status=403
                )
            except ValidationError as e:
                # model-level validation outside the service error hierarchy
                return JsonResponse(
                    {"ok": False, "error": "INVALID_REQUEST", "message": "; ".join(e.messages)},
                    status=400,
                )
        return wrapper
    return decorator


# ---------- Bills ----------
@require_http_methods(["GET", "POST"])
def bills_view(request, business_id, vendor_id):
    if request.method == "POST":
        return _create_bill(request, business_id, vendor_id)
    return _list_bills(request, business_id, vendor_id)


@ap_view()
def _list_bills(request, business, vendor_id):
    bills = services.list_bills(
        business,
        vendor_id,
        status=request.GET.get("status", "all"),
        limit=request.GET.get("limit"),
    )
    return JsonResponse({"ok": True, "bills": [serialize_bill(b, b.applied_cents) for b in bills]})


@ap_view(write=True)
def _create_bill(request, business, vendor_id):
    body = _json_body(request)
    bill = services.create_bill(
        business,
        vendor_id,
        invoice_date=body.get("invoice_date"),
        due_date=body.get("due_date"),
        amount_cents=body.get("amount_cents"),
        memo=body.get("memo"),
        terms=body.get("terms"),
        upload_id=body.get("upload_id"),
        user=request.user,
    )
    return JsonResponse({"ok": True, "bill": serialize_bill(bill)}, status=201)


@require_http_methods(["PATCH"])
@ap_view(write=True)
def bill_detail_view(request, business, vendor_id, bill_id):
    bill = services.update_bill(
        business, bill_id, _json_body(request), user=request.user, vendor_id=vendor_id
    )
    applied = services.applied_by_bill(business, [bill.pk])[bill.pk]
    return JsonResponse({"ok": True, "bill": serialize_bill(bill, applied)})


@require_http_methods(["POST"])
@ap_view(write=True)
def void_bill_view(request, business, vendor_id, bill_id):
    body = _json_body(request)
    bill = services.void_bill(
        business, bill_id, reason=body.get("reason"), user=request.user, vendor_id=vendor_id
    )
    return JsonResponse({"ok": True, "bill": serialize_bill(bill)})


# ---------- Summaries ----------
@require_http_methods(["GET"])
@ap_view()
def vendor_summary_view(request, business, vendor_id):
    summary = services.vendor_aging_summary(business, vendor_id, as_of=request.GET.get("asOf"))
    return JsonResponse({"ok": True, **summary})


@require_http_methods(["GET"])
@ap_view()
def vendors_summary_view(request, business):
    summary = services.vendors_aging_summary(
        business,
        as_of=request.GET.get("asOf"),
        vendor_ids=_id_list(request.GET.get("vendor_ids"), "vendor_ids"),
        limit=request.GET.get("limit"),
    )
    return JsonResponse({"ok": True, **summary})


@require_http_methods(["GET"])
@ap_view()
def vendor_payments_summary_view(request, business, vendor_id):
    summary = services.vendor_payments_summary(
        business, vendor_id, limit=request.GET.get("limit")
    )
    return JsonResponse({"ok": True, **summary})


@require_http_methods(["GET"])
@ap_view()
def vendor_statement_view(request, business, vendor_id):
    rows = services.vendor_statement_rows(
        business, vendor_id, date_from=request.GET.get("from"), date_to=request.GET.get("to")
    )
    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = f'attachment; filename="vendor-{vendor_id}-statement.csv"'
    return services.write_statement_csv(rows, response)


# ---------- Payments ----------
@require_http_methods(["POST"])
@ap_view(write=True)
def create_payment_view(request, business, vendor_id):
    body = _json_body(request)
    entry = services.create_vendor_payment(
        business,
        account_id=body.get("account_id"),
        vendor_id=vendor_id,
        date=body.get("date"),
        amount_cents=body.get("amount_cents"),
        memo=body.get("memo"),
        method=body.get("method") or "OTHER",
        user=request.user,
    )
    return JsonResponse({"ok": True, "entry": serialize_entry(entry)}, status=201)


@require_http_methods(["POST"])
@ap_view(write=True)
def apply_payment_view(request, business, account_id, entry_id):
    body = _json_body(request)
    result = services.apply_payment(
        business,
        entry_id,
        body.get("applications"),
        user=request.user,
        account_id=account_id,
    )
    return JsonResponse(result.to_payload())


@require_http_methods(["POST"])
@ap_view(write=True)
def unapply_payment_view(request, business, account_id, entry_id):
    body = _json_body(request)
    bill_ids = services.ALL if body.get("all") is True else body.get("bill_ids")
    result = services.unapply_payment(
        business,
        entry_id,
        bill_ids,
        reason=body.get("reason"),
        user=request.user,
        account_id=account_id,
    )
    return JsonResponse(result.to_payload())


@require_http_methods(["POST"])
@ap_view(write=True)
def unapply_and_delete_view(request, business, account_id, entry_id):
    body = _json_body(request)
    result = services.unapply_and_delete(
        business,
        entry_id,
        reason=body.get("reason"),
        user=request.user,
        account_id=account_id,
    )
    return JsonResponse({**result.to_payload(), "deleted": True})


# ---------- Ledger entries ----------
@require_http_methods(["PATCH", "DELETE"])
@ap_view(write=True)
def entry_detail_view(request, business, account_id, entry_id):
    if request.method == "DELETE":
        entry = services.delete_entry(business, entry_id, user=request.user, account_id=account_id)
    else:
        entry = services.update_entry(
            business, entry_id, _json_body(request), user=request.user, account_id=account_id
        )
    return JsonResponse({"ok": True, "entry": serialize_entry(entry)})


# ---------- Closed periods ----------
@require_http_methods(["POST", "DELETE"])
@ap_view(write=True)
def closed_period_view(request, business, month):
    if request.method == "DELETE":
        services.reopen_period(business, month, user=request.user)
        return JsonResponse({"ok": True, "month": month, "closed": False})
    services.close_period(business, month, user=request.user)
    return JsonResponse({"ok": True, "month": month, "closed": True})
