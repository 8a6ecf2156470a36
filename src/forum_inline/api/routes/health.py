"""
Health check endpoint for monitoring.

Reports database reachability and which inline features the forum
currently offers, so a load balancer can tell a degraded node apart.
"""

import time

import structlog
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ...forum.blockquotes import can_do_quoted_reply, can_edit_inline
from ...models.api_models import HealthResponse
from ...storage.database import get_db_session
from ...version import API_VERSION

logger = structlog.get_logger(__name__)

router = APIRouter()

_start_time = time.time()


def _database_reachable() -> bool:
    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("health_database_unreachable", error=str(e))
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    database_ok = _database_reachable()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=API_VERSION,
        uptime_seconds=time.time() - _start_time,
        database="ok" if database_ok else "unreachable",
        features={
            "inline_editing": can_edit_inline(),
            "quoted_replies": can_do_quoted_reply(),
        },
    )
