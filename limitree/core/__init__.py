from limitree.core.clock import Clock, ManualClock, SystemClock
from limitree.core.temporal import Duration, Instant

__all__ = ["Clock", "Duration", "Instant", "ManualClock", "SystemClock"]
