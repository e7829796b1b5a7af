"""
schema.py — Pydantic models for the Essembi chat integration
=============================================================
These are the domain objects that flow through the system:

  - the environment / field schema returned by the backend
  - the request and response payloads of the backend REST contract
  - the small slice of the chat platform's inbound activity we read

Pydantic gives us free validation and easy dict/JSON conversion. Wire
names are camelCase, so the backend-facing models declare aliases and
accept either spelling.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ── Environment schema ────────────────────────────────────────────────────────

class Choice(WireModel):
    id: int
    name: str


class EnvironmentField(WireModel):
    id: int
    name: str
    type: str
    required: bool = False
    values: Optional[list[Choice]] = None


class Environment(WireModel):
    id: int
    name: str
    table_id: int = Field(alias="tableId")
    fields: list[EnvironmentField] = Field(default_factory=list)


class IdentityResolution(WireModel):
    apps: Optional[list[Environment]] = None

    @property
    def environments(self) -> list[Environment]:
        return list(self.apps or [])


# ── Backend payloads ──────────────────────────────────────────────────────────

class TicketSubmission(WireModel):
    email: str
    app_id: int = Field(alias="appId")
    table_id: int = Field(alias="tableId")
    values: dict[str, str] = Field(default_factory=dict)


class TicketResult(WireModel):
    url: str
    name: str
    number: Optional[str] = None


class SearchResult(WireModel):
    url: str
    name: str
    table: str


class SearchResults(WireModel):
    results: Optional[list[SearchResult]] = None


class MessageResponse(WireModel):
    message: Optional[str] = None


# ── Session state ─────────────────────────────────────────────────────────────
# Stored between the environment-choice card and the user's reply.

class PendingSelection(BaseModel):
    apps: list[Environment]
    email: str
    subject: Optional[str] = None
    body: Optional[str] = None


# ── Inbound activity ──────────────────────────────────────────────────────────

class TurnContext(BaseModel):
    """Who sent an activity, and where."""

    service_url: str = ""
    conversation_id: str
    conversation_type: Optional[str] = None
    from_id: str
    from_name: Optional[str] = None
    from_role: Optional[str] = None
    recipient_id: Optional[str] = None
    channel_data: dict[str, Any] = Field(default_factory=dict)


class Member(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class MessagePayload(BaseModel):
    subject: Optional[str] = None
    body: Optional[str] = None


class ActionInvoke(BaseModel):
    """A compose-box action. ``data`` is absent on the initial fetch."""

    turn: TurnContext
    command_id: str
    data: Optional[Any] = None
    message_payload: Optional[MessagePayload] = None


class ChatMessage(BaseModel):
    turn: TurnContext
    text: str = ""


class Command(BaseModel):
    """A free-text command descriptor, as listed on the help card."""

    name: str
    usage: str
    description: str


class Reply(BaseModel):
    """A message sent back into the conversation: plain text and/or a card."""

    text: Optional[str] = None
    attachments: list[dict[str, Any]] = Field(default_factory=list)

    def to_activity(self) -> dict[str, Any]:
        activity: dict[str, Any] = {"type": "message"}
        if self.text is not None:
            activity["text"] = self.text
        if self.attachments:
            activity["attachments"] = self.attachments
        return activity
