from orderline.realtime.channel import EventChannel
from orderline.realtime.reconciler import ApplyResult, EventReconciler

__all__ = ["ApplyResult", "EventChannel", "EventReconciler"]
