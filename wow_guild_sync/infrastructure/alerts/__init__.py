"""
Operational Alerts

Webhook notifications for failed or degraded sync runs.
"""

from .alert_service import AlertService, AlertLevel

__all__ = [
    "AlertService",
    "AlertLevel",
]
