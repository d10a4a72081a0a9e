"""Prometheus metrics for monitoring loan creation, charges, cash collected and receipt performance"""

from decimal import Decimal
from prometheus_client import Counter, Histogram

# Loan metrics
loans_created_counter = Counter(
    "cashloan_loans_created_total",
    "Loans created",
    ["frequency"],  # weekly | biweekly | monthly
)

charge_counter = Counter(
    "cashloan_charges_total",
    "Charge attempts by outcome",
    ["outcome"],  # paid | loan_paid | rejected | receipt_failed
)

collected_amount_counter = Counter(
    "cashloan_collected_amount_total",
    "Cash collected through charges",
)

# Receipt service metrics
receipt_latency_histogram = Histogram(
    "receipt_latency_seconds",
    "Receipt service response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

receipt_failure_counter = Counter(
    "receipt_failures_total",
    "Failed receipt issuances",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_charge(amount: Decimal, loan_paid: bool) -> None:
    """Record a successful charge and the cash it brought in"""
    charge_counter.labels(outcome="loan_paid" if loan_paid else "paid").inc()
    collected_amount_counter.inc(float(amount))
