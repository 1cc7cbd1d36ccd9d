from django.core.exceptions import ValidationError


class PayablesError(ValidationError):
    """
    Base for every accounts-payable rule violation.

    Subclasses ValidationError so callers that already catch Django's
    ValidationError keep working; `error_code` and `status` give the HTTP
    layer enough structure to render a specific message.
    """

    error_code = "AP_ERROR"
    status = 400
    default_message = "Accounts payable request rejected."

    def __init__(self, message=None, **context):
        self.context = context
        super().__init__(message or self.default_message, code=self.error_code)

    def to_payload(self):
        payload = {"ok": False, "error": self.error_code, "message": self.message}
        for key, value in self.context.items():
            if value is not None:
                payload[key] = value
        return payload


# ---------- Validation ----------
class InvalidRequestError(PayablesError):
    error_code = "INVALID_REQUEST"
    default_message = "Invalid request."


class InvalidAmountError(InvalidRequestError):
    error_code = "INVALID_AMOUNT"
    default_message = "Amount must be a positive integer number of cents."


class InvalidDateError(InvalidRequestError):
    error_code = "INVALID_DATE"
    default_message = "Date must be YYYY-MM-DD."


class DuplicateBillError(InvalidRequestError):
    error_code = "DUPLICATE_BILL_ID"
    default_message = "Duplicate bill_id in applications."


# ---------- Referential ----------
class NotFoundError(PayablesError):
    error_code = "NOT_FOUND"
    status = 404
    default_message = "Not found."


class PaymentNotVendorLinkedError(PayablesError):
    error_code = "PAYMENT_NOT_VENDOR_LINKED"
    default_message = "Entry must be linked to a vendor."


class CrossVendorApplicationError(PayablesError):
    error_code = "CROSS_VENDOR_APPLICATION"
    default_message = "All bills must belong to the same vendor as the entry."


# ---------- Conservation ----------
class ConservationError(PayablesError):
    status = 409


class OverApplyBillError(ConservationError):
    error_code = "OVER_APPLY_BILL"
    default_message = "Applied amount would exceed the bill amount."

    def __init__(self, bill_id, message=None):
        self.bill_id = bill_id
        super().__init__(message, bill_id=bill_id)


class OverApplyEntryError(ConservationError):
    error_code = "OVER_APPLY_ENTRY"
    default_message = "Applied amounts would exceed the payment amount."


# ---------- State ----------
class StateError(PayablesError):
    status = 409


class MustUnapplyFirstError(StateError):
    error_code = "MUST_UNAPPLY_FIRST"
    default_message = "Unapply all payments before voiding or deleting."


class BillHasApplicationsError(StateError):
    error_code = "BILL_HAS_APPLICATIONS"
    default_message = "Only memo and due date can change on a bill with applied payments."


class AppliedPaymentImmutableError(StateError):
    error_code = "APPLIED_PAYMENT_IMMUTABLE"
    default_message = (
        "Amount, vendor, account, type and method are locked while the payment is applied."
    )


class BillVoidedError(StateError):
    error_code = "BILL_VOIDED"
    default_message = "Bill is voided."


# ---------- Temporal ----------
class ClosedPeriodError(PayablesError):
    error_code = "CLOSED_PERIOD"
    status = 409
    default_message = "This period is closed. Reopen period to modify."

    def __init__(self, month, message=None):
        self.month = month
        super().__init__(message, month=month)
