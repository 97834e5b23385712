"""Scalability layer: circuit breaker for external collaborators. No FastAPI."""

from gitguard.scalability.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
]
