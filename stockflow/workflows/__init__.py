"""Planning session context and background runs."""

from .background import RunHandle, RunKind
from .session import PlanningSession, SessionSnapshot

__all__ = [
    "RunHandle",
    "RunKind",
    "PlanningSession",
    "SessionSnapshot",
]
