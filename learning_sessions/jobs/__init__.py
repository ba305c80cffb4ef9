"""Background jobs package.

This package provides scheduled task execution for the session engine,
including per-session break timers and the progress buffer sweep.
"""

from learning_sessions.jobs.scheduler import JobScheduler, get_scheduler

__all__ = ["JobScheduler", "get_scheduler"]
