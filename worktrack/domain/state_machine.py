from __future__ import annotations

from enum import StrEnum


class WorkItemStatus(StrEnum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    BLOCKED = "Blocked"
    DONE = "Done"


# Every status may follow every other, including DONE back to TODO.
ALLOWED_TRANSITIONS: dict[WorkItemStatus, set[WorkItemStatus]] = {
    source: set(WorkItemStatus) for source in WorkItemStatus
}


def can_transition(source: WorkItemStatus, target: WorkItemStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(source, set())
