"""
Prometheus metrics for the scheduling core.

Metrics live in a private registry so importing this module never collides
with the host application's default registry.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram

REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "learnsched_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "learnsched_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "learnsched_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "learnsched_booking_transitions_total",
    "Booking lifecycle transitions applied",
    ["action"],
    registry=REGISTRY,
)

booking_conflicts_total = Counter(
    "learnsched_booking_conflicts_total",
    "Assign/accept attempts rejected for instructor double-booking",
    ["source"],
    registry=REGISTRY,
)

escalations_total = Counter(
    "learnsched_escalations_total",
    "Stale bookings processed by the escalation sweep",
    ["outcome"],
    registry=REGISTRY,
)

audit_write_failures_total = Counter(
    "learnsched_audit_write_failures_total",
    "Audit events that could not be persisted",
    ["action"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade over the module-level collectors."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """Record service operation metrics from @measure_operation decorator."""
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_booking_transition(action: str) -> None:
        booking_transitions_total.labels(action=action).inc()

    @staticmethod
    def record_booking_conflict(source: str) -> None:
        """``source`` is ``scan`` for the service check or ``constraint`` for the DB backstop."""
        booking_conflicts_total.labels(source=source).inc()

    @staticmethod
    def record_escalation(outcome: str) -> None:
        escalations_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_audit_failure(action: str) -> None:
        audit_write_failures_total.labels(action=action).inc()


prometheus_metrics = PrometheusMetrics()
