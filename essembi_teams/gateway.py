"""
gateway.py — Client for the Essembi integrations API
=====================================================
Three operations, each a single bearer-authenticated JSON POST to
``<base_url>/Integrations/MSTeams/<Op>``:

  - authenticate : chat email -> environments the user can file into
  - create       : submit a ticket
  - search       : keyword search across the user's tickets

There are no retries. A failure, including a connection error or timeout,
is raised as an EssembiError subclass and shown to the user straight
away. No timeout is set unless one is configured; cancelling the calling
task cancels the request.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from essembi_teams.errors import (
    AccountNotFound,
    AuthenticationFailed,
    EssembiError,
    SearchFailed,
    SubmissionFailed,
    UnexpectedResponse,
)
from essembi_teams.schema import (
    IdentityResolution,
    MessageResponse,
    SearchResult,
    SearchResults,
    TicketResult,
    TicketSubmission,
)

logger = logging.getLogger(__name__)

AUTHENTICATE_PATH = "Integrations/MSTeams/Authenticate"
CREATE_PATH = "Integrations/MSTeams/Create"
SEARCH_PATH = "Integrations/MSTeams/Search"


def _parse(model: type[BaseModel], response: httpx.Response):
    try:
        return model.model_validate_json(response.content)
    except ValidationError as e:
        logger.warning("Unparseable %s body from %s: %s", model.__name__, response.request.url, e)
        raise UnexpectedResponse() from e


def _error_message(response: httpx.Response) -> Optional[str]:
    """Best effort: pull ``message`` out of an error body."""
    if not response.content:
        return None
    try:
        return MessageResponse.model_validate_json(response.content).message
    except ValidationError:
        return None


class BackendGateway:
    def __init__(
        self,
        base_url: str,
        integration_key: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            headers={"Authorization": f"Bearer {integration_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def _post(
        self, path: str, payload: dict[str, Any], failure: type[EssembiError]
    ) -> httpx.Response:
        try:
            response = await self.client.post(path, json=payload)
        except httpx.RequestError as e:
            # Unreachable backend reads the same as a failed call
            logger.warning("POST %s failed: %r", path, e)
            raise failure() from e
        logger.debug("POST %s -> %s", path, response.status_code)
        return response

    async def authenticate(self, email: str) -> IdentityResolution:
        response = await self._post(AUTHENTICATE_PATH, {"email": email}, AuthenticationFailed)
        if response.status_code == httpx.codes.NOT_FOUND:
            raise AccountNotFound()
        if response.status_code != httpx.codes.OK:
            logger.warning("Authenticate failed with HTTP %s", response.status_code)
            raise AuthenticationFailed()
        return _parse(IdentityResolution, response)

    async def create(self, submission: TicketSubmission) -> TicketResult:
        response = await self._post(CREATE_PATH, submission.model_dump(by_alias=True), SubmissionFailed)
        if response.status_code != httpx.codes.OK:
            logger.warning("Create failed with HTTP %s", response.status_code)
            raise SubmissionFailed(_error_message(response))
        return _parse(TicketResult, response)

    async def search(self, email: str, query: str) -> list[SearchResult]:
        response = await self._post(SEARCH_PATH, {"email": email, "query": query}, SearchFailed)
        if response.status_code != httpx.codes.OK:
            logger.warning("Search failed with HTTP %s", response.status_code)
            raise SearchFailed()
        return list(_parse(SearchResults, response).results or [])

    async def aclose(self) -> None:
        await self.client.aclose()
