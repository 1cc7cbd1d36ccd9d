from .aging import (bucket_for, vendor_aging_summary, vendor_payments_summary,
                    vendors_aging_summary)
from .allocation import (ALL, ApplicationResult, apply_payment,
                         unapply_and_delete, unapply_payment)
from .audit_helper import log_activity
from .bills import (applied_by_bill, create_bill, list_bills,
                    recompute_bill_statuses, update_bill, void_bill)
from .payment import (assert_entry_mutable, create_vendor_payment,
                      delete_entry, find_or_create_category,
                      refresh_payment_memo, update_entry)
from .periods import (assert_period_open, assert_period_open_for_entries,
                      close_period, reopen_period)
from .statement import vendor_statement_rows, write_statement_csv
