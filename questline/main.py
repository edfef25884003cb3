"""questline FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from questline.api import auth, friends, health, quests, users
from questline.core.config import settings
from questline.core.exceptions import QuestlineError

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


@app.exception_handler(QuestlineError)
async def questline_error_handler(request: Request, exc: QuestlineError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed path=%s code=%s", request.url.path, exc.code)
    else:
        logger.info("request_rejected path=%s code=%s", request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(friends.router)
app.include_router(quests.router)
