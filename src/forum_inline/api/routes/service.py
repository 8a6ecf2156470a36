"""
Batch remote procedure endpoint.

POST /api/v1/service takes ``[{index, methodname, args}]`` and answers with
one ``{error, data}`` or ``{error, exception}`` entry per executed call. Each
call runs in its own transaction; the batch stops at the first failing call.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends

from ...exceptions import ForumInlineError
from ...forum.service import ForumService, execute
from ...models.api_models import ServiceCall, ServiceError, ServiceResponse
from ...storage.database import get_db_session
from ..dependencies import get_current_user_id

logger = structlog.get_logger(__name__)

router = APIRouter()


def run_call(call: ServiceCall, user_id: int) -> ServiceResponse:
    try:
        with get_db_session() as session:
            data = execute(ForumService(session, user_id), call.methodname, call.args)
    except ForumInlineError as e:
        logger.info(
            "service_call_failed",
            methodname=call.methodname,
            index=call.index,
            errorcode=e.errorcode,
            error=e.message,
        )
        return ServiceResponse(error=True, exception=ServiceError(errorcode=e.errorcode, message=e.message))

    logger.debug("service_call_completed", methodname=call.methodname, index=call.index)
    return ServiceResponse(error=False, data=data)


@router.post("/service", response_model=List[ServiceResponse], response_model_exclude_none=True)
async def call_service(
    calls: List[ServiceCall],
    user_id: int = Depends(get_current_user_id),
) -> List[ServiceResponse]:
    """
    Run a batch of remote calls in index order.

    Returns:
        One response per executed call
    """
    logger.info("service_batch_received", calls=len(calls), user_id=user_id)

    responses: List[ServiceResponse] = []
    for call in sorted(calls, key=lambda c: c.index):
        response = run_call(call, user_id)
        responses.append(response)
        if response.error:
            break
    return responses
