"""
host.py — Looking up the acting user on the chat platform
==========================================================
Before we can talk to Essembi we need the user's email, which only the
chat platform knows. The platform's roster lookup fails in a few known
ways, and the dialog reacts differently to each:

  - NOT_INSTALLED : the app is not in this conversation's roster yet
  - UNREADY       : the platform refuses the lookup in this context
  - OTHER         : anything else, which is a bug or an outage

resolve_identity() folds those into an IdentityLookup value so callers
branch on a field instead of catching platform exceptions.
"""

import enum
import logging
from typing import Optional, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, model_validator

from essembi_teams.schema import Member, TurnContext

logger = logging.getLogger(__name__)

NOT_INSTALLED_CODES = {"BotNotInConversationRoster"}
UNREADY_CODES = {"BotNotReady", "ConversationNotReady"}
UNREADY_STATUS = 412


class HostLookupError(Exception):
    """The platform rejected a roster lookup."""

    def __init__(self, status: int, code: Optional[str] = None, message: str = ""):
        self.status = status
        self.code = code
        super().__init__(message or f"Roster lookup failed with HTTP {status} ({code})")


@runtime_checkable
class Host(Protocol):
    async def get_member(self, turn: TurnContext) -> Member: ...


class LookupOutcome(enum.Enum):
    OK = "ok"
    NOT_INSTALLED = "not_installed"
    UNREADY = "unready"
    OTHER = "other"


class IdentityLookup(BaseModel):
    """A roster lookup result. A failed lookup always carries its error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    outcome: LookupOutcome
    member: Optional[Member] = None
    error: Optional[Exception] = None

    @model_validator(mode="after")
    def check_outcome(self) -> "IdentityLookup":
        if self.outcome is LookupOutcome.OK and self.member is None:
            raise ValueError("a successful lookup needs a member")
        if self.outcome is not LookupOutcome.OK and self.error is None:
            raise ValueError(f"a {self.outcome.value} lookup needs the error that caused it")
        return self

    @property
    def ok(self) -> bool:
        return self.outcome is LookupOutcome.OK


def classify(error: HostLookupError) -> LookupOutcome:
    if error.code in NOT_INSTALLED_CODES or error.status == httpx.codes.FORBIDDEN:
        return LookupOutcome.NOT_INSTALLED
    if error.code in UNREADY_CODES or error.status == UNREADY_STATUS:
        return LookupOutcome.UNREADY
    return LookupOutcome.OTHER


async def resolve_identity(host: Host, turn: TurnContext) -> IdentityLookup:
    try:
        member = await host.get_member(turn)
    except HostLookupError as e:
        outcome = classify(e)
        logger.info("Roster lookup for %s failed: %s (%s)", turn.from_id, outcome.value, e)
        return IdentityLookup(outcome=outcome, error=e)
    return IdentityLookup(outcome=LookupOutcome.OK, member=member)


# ── Connector-backed host ─────────────────────────────────────────────────────
# GET {serviceUrl}/v3/conversations/{conversationId}/members/{userId}

class ConnectorHost:
    """Roster lookups against the platform connector's REST API."""

    def __init__(self, token: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.AsyncClient(headers=headers, transport=transport)

    async def get_member(self, turn: TurnContext) -> Member:
        url = (
            f"{turn.service_url.rstrip('/')}/v3/conversations/"
            f"{turn.conversation_id}/members/{turn.from_id}"
        )
        response = await self.client.get(url)
        if response.is_success:
            body = response.json()
            return Member(
                id=body.get("id", turn.from_id),
                name=body.get("name"),
                email=body.get("email") or body.get("userPrincipalName"),
            )

        code = None
        try:
            code = (response.json().get("error") or {}).get("code")
        except (ValueError, AttributeError):
            pass
        raise HostLookupError(response.status_code, code)

    async def aclose(self) -> None:
        await self.client.aclose()
