import datetime
import logging
import re

from django.db import IntegrityError, transaction

from ..exceptions import ClosedPeriodError, InvalidDateError, InvalidRequestError
from ..models import ClosedPeriod, Entry
from ..models.period import MONTH_RE
from .audit_helper import (CLOSED_PERIOD_CLOSED, CLOSED_PERIOD_REOPENED,
                           actor_or_none, log_activity)

logger = logging.getLogger(__name__)

_YMD_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

# The stored date of a document decides its period. Updates are checked
# against what is already on disk, so moving a document out of a closed
# month is refused like editing it.


def normalize_to_ymd(value):
    """
    Return a `date` for date/datetime objects, "YYYY-MM-DD" strings and ISO
    datetime strings. Anything else yields None.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        m = _YMD_RE.match(value.strip())
        if not m:
            return None
        rest = value.strip()[10:]
        if rest and not rest.startswith("T"):
            return None
        try:
            return datetime.date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None
    return None


def require_ymd(value, field="date"):
    """Strict variant for request input: a date or exactly "YYYY-MM-DD"."""
    if isinstance(value, str) and len(value.strip()) != 10:
        raise InvalidDateError(f"{field} must be YYYY-MM-DD", field=field)
    ymd = normalize_to_ymd(value)
    if ymd is None:
        raise InvalidDateError(f"{field} must be YYYY-MM-DD", field=field)
    return ymd


def month_key(value):
    return f"{value.year:04d}-{value.month:02d}"


def is_month_closed(business, month):
    return ClosedPeriod.objects.for_business(business).filter(month=month).exists()


def assert_period_open(business, date_input):
    """
    Raise ClosedPeriodError when `date_input` falls in a closed month.
    Missing or unparseable dates are left to the caller's own validation.
    """
    ymd = normalize_to_ymd(date_input)
    if ymd is None:
        return
    month = month_key(ymd)
    if is_month_closed(business, month):
        logger.info(
            "Rejected write into closed period",
            extra={"business_id": business.pk, "month": month},
        )
        raise ClosedPeriodError(month)


def assert_period_open_for_entries(business, entry_ids):
    ids = [i for i in entry_ids if i is not None]
    if not ids:
        return
    dates = (
        Entry.objects.for_business(business)
        .filter(pk__in=ids)
        .values_list("date", flat=True)
    )
    for d in sorted(set(dates)):
        assert_period_open(business, d)


def _validate_month(month):
    if not isinstance(month, str) or not MONTH_RE.match(month):
        raise InvalidRequestError("month must be YYYY-MM", field="month")
    return month


def close_period(business, month, user=None):
    """Close a month. Closing an already-closed month is a no-op."""
    month = _validate_month(month)
    try:
        with transaction.atomic():
            period, created = ClosedPeriod.objects.get_or_create(
                business=business,
                month=month,
                defaults={"closed_by": actor_or_none(user)},
            )
    except IntegrityError:
        # lost a race with a concurrent close
        period, created = ClosedPeriod.objects.get(business=business, month=month), False

    if created:
        logger.info("Closed period", extra={"business_id": business.pk, "month": month})
        log_activity(
            business=business,
            actor=user,
            event_type=CLOSED_PERIOD_CLOSED,
            payload={"month": month},
        )
    return period


def reopen_period(business, month, user=None):
    """Reopen a month. Reopening an open month is a no-op."""
    month = _validate_month(month)
    with transaction.atomic():
        deleted, _ = (
            ClosedPeriod.objects.for_business(business).filter(month=month).delete()
        )

    if deleted:
        logger.info("Reopened period", extra={"business_id": business.pk, "month": month})
        log_activity(
            business=business,
            actor=user,
            event_type=CLOSED_PERIOD_REOPENED,
            payload={"month": month},
        )
    return bool(deleted)
