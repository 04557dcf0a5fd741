"""
Visit analytics: classification, recording, dispatch and aggregation.
"""

from .aggregator import AnalyticsAggregator, fold_events
from .classifier import DeviceType, UserAgentInfo, classify
from .dispatcher import AnalyticsDispatcher, TaskDispatcher, QueueDispatcher, DispatchMode
from .recorder import AnalyticsRecorder, RecordingFailureSink

__all__ = [
    "AnalyticsAggregator",
    "fold_events",
    "DeviceType",
    "UserAgentInfo",
    "classify",
    "AnalyticsDispatcher",
    "TaskDispatcher",
    "QueueDispatcher",
    "DispatchMode",
    "AnalyticsRecorder",
    "RecordingFailureSink",
]
