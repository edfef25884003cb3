"""Best-effort notifications to the recommendation service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from questline.core.config import settings
from questline.schemas.recommendation import AddUsersRequest, UserWithQuestIds

logger = logging.getLogger(__name__)


def notify_user_quests(user_id: int, quest_ids: list[int]) -> dict[str, Any] | None:
    """Send the user's full owned-quest list to ``POST {base}/users/add``.

    Runs after the purchase has been committed. Failures are logged and swallowed: the purchase
    stands whatever happens here. Returns the parsed response body, or None when skipped or failed.
    """
    base_url = settings.recommendation_service_url.strip().rstrip("/")
    if not base_url:
        logger.debug("recommendation_sync_skipped user_id=%s reason=disabled", user_id)
        return None

    payload = AddUsersRequest(users=[UserWithQuestIds(user_id=user_id, quest_ids=quest_ids)])
    try:
        response = httpx.post(
            f"{base_url}/users/add",
            json=payload.model_dump(),
            timeout=settings.recommendation_timeout_seconds,
        )
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPError as exc:
        logger.warning("recommendation_sync_failed user_id=%s error=%s", user_id, exc)
        return None
    except ValueError:
        logger.warning("recommendation_sync_failed user_id=%s error=invalid JSON response", user_id)
        return None

    logger.info("recommendation_sync_ok user_id=%s quests=%s", user_id, len(quest_ids))
    return body
