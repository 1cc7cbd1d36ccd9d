from .account import AccountAdmin, CategoryAdmin
from .actions import recompute_statuses, void_selected_bills
from .auditlog import ActivityLogAdmin
from .bill import BillAdmin, VendorAdmin
from .entry import BillPaymentAllocationAdmin, EntryAdmin
from .inlines import BillAllocationInline, EntryAllocationInline
from .membership import BusinessAdmin, MembershipAdmin
from .mixins import TenantAdminMixin
from .period import ClosedPeriodAdmin
