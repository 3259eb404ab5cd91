"""Error taxonomy for the request/task lifecycle.

``NotFound`` and ``InvalidTransition`` are reported back to the invoking
user. ``Conflict`` only ever travels between the identity resolver and its
own retry loop. ``StoreUnavailable`` wraps any persistence failure.
"""

from __future__ import annotations


class RequestBotError(Exception):
    """Base class for every error the core raises on purpose."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail


# --- NotFound ---------------------------------------------------------------


class NotFound(RequestBotError):
    pass


class UserNotFound(NotFound):
    pass


class RequestNotFound(NotFound):
    pass


class TaskNotFound(NotFound):
    pass


class ScheduleNotFound(NotFound):
    pass


# --- InvalidTransition -------------------------------------------------------


class InvalidTransition(RequestBotError):
    pass


class TaskUnassigned(InvalidTransition):
    pass


class TaskAlreadyCompleted(InvalidTransition):
    pass


class TaskAlreadyAssigned(InvalidTransition):
    def __init__(self, detail: str = "", assignee_id: str | None = None) -> None:
        super().__init__(detail)
        self.assignee_id = assignee_id


class NotScheduleOwner(InvalidTransition):
    pass


# --- Store ------------------------------------------------------------------


class Conflict(RequestBotError):
    """Uniqueness race lost against a concurrent writer."""


class StoreUnavailable(RequestBotError):
    pass


# --- Command decoding ----------------------------------------------------------


class CommandError(RequestBotError):
    pass


class UnknownCommand(CommandError):
    pass


class InvalidCommand(CommandError):
    pass
