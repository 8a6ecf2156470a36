"""
Client for the batch service endpoint.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog

from ..config import settings

logger = structlog.get_logger(__name__)

SERVICE_PATH = "/api/v1/service"


class AjaxError(Exception):
    """A remote call answered with an error payload."""

    def __init__(self, errorcode: str, message: str, methodname: str = ""):
        self.errorcode = errorcode
        self.message = message
        self.methodname = methodname
        super().__init__(f"{methodname}: {errorcode}: {message}" if methodname else f"{errorcode}: {message}")


class AjaxClient:
    """
    Posts batches of remote calls for one user.

    Args:
        client: httpx client pointing at the service host
        user_id: Sent as X-User-Id when given
    """

    def __init__(self, client: httpx.AsyncClient, user_id: Optional[int] = None):
        self.client = client
        self.user_id = user_id

    @classmethod
    def connect(cls, base_url: str, user_id: int, timeout: Optional[float] = None) -> "AjaxClient":
        client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout if timeout is not None else settings.service_timeout_seconds,
        )
        return cls(client, user_id)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "AjaxClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def call(self, requests: List[Tuple[str, Dict[str, Any]]]) -> List[Any]:
        """
        Run remote calls in one request.

        Args:
            requests: (methodname, args) pairs

        Returns:
            The data of each call, in order

        Raises:
            AjaxError: For the first call that failed
            httpx.HTTPError: On transport failures and non-2xx responses
        """
        payload = [
            {"index": index, "methodname": methodname, "args": args}
            for index, (methodname, args) in enumerate(requests)
        ]
        headers = {"X-User-Id": str(self.user_id)} if self.user_id is not None else None

        response = await self.client.post(SERVICE_PATH, json=payload, headers=headers)
        response.raise_for_status()

        results = []
        for (methodname, _), entry in zip(requests, response.json()):
            if entry.get("error"):
                exception = entry.get("exception") or {}
                logger.debug("ajax_call_error", methodname=methodname, errorcode=exception.get("errorcode"))
                raise AjaxError(
                    exception.get("errorcode", "error"),
                    exception.get("message", ""),
                    methodname,
                )
            results.append(entry.get("data"))

        if len(results) != len(requests):
            raise AjaxError("invalidresponse", "Incomplete service response")
        return results

    async def call_one(self, methodname: str, args: Dict[str, Any]) -> Any:
        (result,) = await self.call([(methodname, args)])
        return result
