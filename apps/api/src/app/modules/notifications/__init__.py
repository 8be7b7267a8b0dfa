"""Notifications module - email dispatch with an outbox for retries."""

from app.modules.notifications.models import OutboxStatus, QueuedEmail
from app.modules.notifications.service import dispatch

__all__ = ["OutboxStatus", "QueuedEmail", "dispatch"]
