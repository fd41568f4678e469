"""Scheduled reminder dispatch: resolve, fan out, classify, reconcile, sweep."""

from .contracts import CycleResult, CycleSummary, DeliveryOutcome, DeliveryTarget, DueReminder, PushDeliveryError
from .cycle import CycleDriver

__all__ = ["CycleDriver", "CycleResult", "CycleSummary", "DeliveryOutcome", "DeliveryTarget", "DueReminder", "PushDeliveryError"]
