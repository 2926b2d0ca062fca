# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for the mail dispatcher."""

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class MailMetrics:
    """Wrapper around the Prometheus registry used by the dispatcher."""

    def __init__(self, registry: CollectorRegistry | None = None):
        """Create counters and gauges inside the provided registry."""
        self.registry = registry or CollectorRegistry()
        self.sent = Counter("mail_dispatch_sent_total", "Total emails accepted by the relay", ["transport"], registry=self.registry)
        self.errors = Counter("mail_dispatch_errors_total", "Total failed deliveries", ["kind"], registry=self.registry)
        self.captured = Counter("mail_dispatch_captured_total", "Total emails captured in development", registry=self.registry)
        self.pending = Gauge("mail_dispatch_pending_messages", "Messages waiting in the delivery queue", registry=self.registry)

    def inc_sent(self, transport: str = "live"):
        """Increase the ``sent`` counter."""
        self.sent.labels(transport=transport or "live").inc()

    def inc_error(self, kind: str | None = None):
        """Increase the ``errors`` counter for the given error kind."""
        self.errors.labels(kind=kind or "unknown").inc()

    def inc_captured(self):
        """Increase the ``captured`` counter."""
        self.captured.inc()

    def set_pending(self, value: int):
        """Update the gauge tracking queued messages."""
        self.pending.set(value)

    def generate_latest(self) -> bytes:
        """Return the latest metrics snapshot in Prometheus text format."""
        return generate_latest(self.registry)
