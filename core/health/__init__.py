"""Health check module."""

from core.health.checker import HealthChecker, HealthStatus

__all__ = ["HealthChecker", "HealthStatus"]
