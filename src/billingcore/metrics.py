"""Business metrics for Prometheus monitoring."""
from prometheus_client import Counter

# Ledger metrics
ledger_operations_total = Counter(
    "billingcore_ledger_operations_total",
    "Credit ledger operations by outcome",
    labelnames=["operation", "outcome"],  # outcome: success, rejected, failed
)

ledger_credits_moved_total = Counter(
    "billingcore_ledger_credits_moved_total",
    "Credits added to or removed from user balances",
    labelnames=["direction"],  # in, out
)

# Invoice metrics
invoices_created_total = Counter(
    "billingcore_invoices_created_total",
    "Total number of invoices created",
    labelnames=["currency"],
)

invoices_deleted_total = Counter(
    "billingcore_invoices_deleted_total",
    "Total number of invoices deleted",
)

invoice_number_collisions_total = Counter(
    "billingcore_invoice_number_collisions_total",
    "Invoice number collisions resolved by regenerating the number",
)
