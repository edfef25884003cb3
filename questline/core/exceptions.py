"""Domain exceptions for the progression engine.

Every failure the engine reports to its caller is a ``QuestlineError`` subclass. Services raise
them; the HTTP layer turns them into JSON responses using ``status_code`` and ``code``.
Anything raised by the persistence layer is wrapped in ``PersistenceFailure`` by
``questline.db.session.atomic``.
"""

from __future__ import annotations

from typing import Any


class QuestlineError(Exception):
    """Base class for typed failures returned by the engine."""

    status_code: int = 400
    code: str = "questline_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details: dict[str, Any] = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **({"details": self.details} if self.details else {})}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class QuestNotFound(QuestlineError):
    status_code = 404
    code = "quest_not_found"

    def __init__(self, quest_id: int) -> None:
        super().__init__(f"Quest {quest_id} not found", {"quest_id": quest_id})


class UserNotFound(QuestlineError):
    status_code = 404
    code = "user_not_found"

    def __init__(self, user_id: int | None = None, message: str = "User not found") -> None:
        super().__init__(message, {"user_id": user_id} if user_id is not None else None)


class AlreadyOwned(QuestlineError):
    status_code = 409
    code = "already_owned"

    def __init__(self, user_id: int, quest_id: int) -> None:
        super().__init__(
            "Quest already purchased or completed",
            {"user_id": user_id, "quest_id": quest_id},
        )


class InsufficientFunds(QuestlineError):
    status_code = 402
    code = "insufficient_funds"

    def __init__(self, user_id: int, required: int, current: int) -> None:
        self.required = required
        self.current = current
        super().__init__(
            f"Not enough coins: need {required}, have {current}",
            {"user_id": user_id, "required": required, "current": current},
        )


class NotPurchased(QuestlineError):
    status_code = 409
    code = "not_purchased"

    def __init__(self, user_id: int, quest_id: int, status: str) -> None:
        super().__init__(
            f"Quest is not in purchased state (current: {status})",
            {"user_id": user_id, "quest_id": quest_id, "status": status},
        )


class NotEligible(QuestlineError):
    status_code = 409
    code = "not_eligible"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, details)


class NotStarted(QuestlineError):
    status_code = 409
    code = "not_started"

    def __init__(self, user_id: int, quest_id: int, status: str) -> None:
        super().__init__(
            f"Quest is not in started state (current: {status})",
            {"user_id": user_id, "quest_id": quest_id, "status": status},
        )


class TasksIncomplete(QuestlineError):
    status_code = 409
    code = "tasks_incomplete"

    def __init__(self, user_id: int, quest_id: int, remaining: int) -> None:
        super().__init__(
            "Not all tasks completed",
            {"user_id": user_id, "quest_id": quest_id, "remaining": remaining},
        )


class PartnerIncomplete(QuestlineError):
    status_code = 409
    code = "partner_incomplete"

    def __init__(self, user_id: int, partner_id: int, quest_id: int) -> None:
        super().__init__(
            "Partner has not completed all tasks",
            {"user_id": user_id, "partner_id": partner_id, "quest_id": quest_id},
        )


class NotFriends(QuestlineError):
    status_code = 403
    code = "not_friends"

    def __init__(self, user_a: int, user_b: int) -> None:
        super().__init__("Users are not friends", {"user_a": user_a, "user_b": user_b})


class FriendshipError(QuestlineError):
    """Invite/accept/block rule violations."""

    code = "friendship_error"


class PersistenceFailure(QuestlineError):
    status_code = 500
    code = "persistence_failure"
