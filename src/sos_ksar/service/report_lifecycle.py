"""Report status state machine.

pending → in_progress → resolved. Any non-terminal status may also move to
cancelled. resolved and cancelled are terminal.
"""

from typing import Dict, FrozenSet

from sos_ksar.constants import ReportStatus
from sos_ksar.exception import InvalidTransitionError

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    ReportStatus.PENDING.value: frozenset(
        {ReportStatus.IN_PROGRESS.value, ReportStatus.CANCELLED.value}
    ),
    ReportStatus.IN_PROGRESS.value: frozenset(
        {ReportStatus.RESOLVED.value, ReportStatus.CANCELLED.value}
    ),
    ReportStatus.RESOLVED.value: frozenset(),
    ReportStatus.CANCELLED.value: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current, target) -> bool:
    """Check whether ``current`` may move to ``target``."""
    current = getattr(current, "value", current)
    target = getattr(target, "value", target)
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current, target) -> None:
    """Raise InvalidTransitionError unless ``current`` may move to ``target``."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            getattr(current, "value", current), getattr(target, "value", target)
        )
