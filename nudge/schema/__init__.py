"""Schema package exports."""

from .push_subscriptions import WebPushSubscription
from .reminders import Reminder

__all__ = ["Reminder", "WebPushSubscription"]
