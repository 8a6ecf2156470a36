"""
Discussion page.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import HTMLResponse

from ...exceptions import PermissionDeniedError, RecordNotFoundError
from ...forum.service import ForumService
from ...storage.database import get_db_session
from ..dependencies import get_current_user_id

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/forum/discussions/{discussion_id}", response_class=HTMLResponse)
async def discussion_page(discussion_id: int, user_id: int = Depends(get_current_user_id)) -> HTMLResponse:
    """
    Render a discussion with the inline form.

    Raises:
        HTTPException: 404 for unknown discussions or users, 403 when denied
    """
    try:
        with get_db_session() as session:
            html = ForumService(session, user_id).discussion_page(discussion_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message) from e

    logger.debug("discussion_page_served", discussion_id=discussion_id, user_id=user_id)
    return HTMLResponse(content=html)
