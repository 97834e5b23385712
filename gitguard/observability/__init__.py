"""Observability layer: in-process metrics. No external SaaS."""

from gitguard.observability.metrics import MetricsCollector

__all__ = ["MetricsCollector"]
