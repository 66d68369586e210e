"""Timer scheduling module."""

from .scheduler import Scheduler, TimerHandle, ManualScheduler, ThreadedScheduler

__all__ = [
    "Scheduler",
    "TimerHandle",
    "ManualScheduler",
    "ThreadedScheduler"
]
