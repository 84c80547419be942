from __future__ import annotations


class WorkItemError(Exception):
    pass


class ValidationError(WorkItemError):
    pass


class NotFoundError(WorkItemError):
    pass


class ForbiddenError(WorkItemError):
    pass


class ConflictError(WorkItemError):
    pass


class InternalError(WorkItemError):
    pass
