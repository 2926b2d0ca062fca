from prometheus_client import CollectorRegistry

from mail_dispatch.prometheus import MailMetrics


def test_mail_metrics_counters_and_gauge():
    """Test basic counter and gauge operations."""
    metrics = MailMetrics()

    metrics.inc_sent()
    metrics.inc_error("protocol")
    metrics.inc_captured()
    metrics.set_pending(3)

    output = metrics.generate_latest()
    assert b'mail_dispatch_sent_total{transport="live"} 1.0' in output
    assert b'mail_dispatch_errors_total{kind="protocol"} 1.0' in output
    assert b"mail_dispatch_captured_total 1.0" in output
    assert b"mail_dispatch_pending_messages 3.0" in output


def test_mail_metrics_custom_registry():
    """Test metrics with custom registry."""
    registry = CollectorRegistry()
    metrics = MailMetrics(registry=registry)

    assert metrics.registry is registry
    metrics.inc_sent("live")
    assert b"mail_dispatch_sent_total" in metrics.generate_latest()


def test_mail_metrics_error_kinds_are_separate():
    metrics = MailMetrics()

    metrics.inc_error("connection")
    metrics.inc_error("connection")
    metrics.inc_error()

    output = metrics.generate_latest().decode()
    assert 'mail_dispatch_errors_total{kind="connection"} 2.0' in output
    assert 'mail_dispatch_errors_total{kind="unknown"} 1.0' in output


def test_instances_do_not_share_registries():
    first = MailMetrics()
    second = MailMetrics()

    first.inc_captured()

    assert b"mail_dispatch_captured_total 0.0" in second.generate_latest()
