from .account import Account
from .allocation import BillPaymentAllocation
from .auditlog import ActivityLog
from .bill import (BILL_STATUS_OPEN, BILL_STATUS_PAID, BILL_STATUS_PARTIAL,
                   BILL_STATUS_VOID, Bill, derive_bill_status)
from .category import Category
from .entitymembership import Business, Membership
from .entry import (ENTRY_KIND_GENERAL, ENTRY_KIND_VENDOR_PAYMENT,
                    ENTRY_TYPE_EXPENSE, ENTRY_TYPE_INCOME, Entry)
from .period import ClosedPeriod
from .vendor import Vendor
