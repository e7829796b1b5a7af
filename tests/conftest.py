"""Shared fakes: a scripted backend behind httpx.MockTransport and a fake chat host."""

import json
from typing import Any, Optional

import httpx
import pytest

from essembi_teams.dialog import ActionDialog
from essembi_teams.gateway import BackendGateway
from essembi_teams.host import HostLookupError
from essembi_teams.schema import ActionInvoke, Member, MessagePayload, TurnContext
from essembi_teams.state import SessionStore

SUPPORT_URL = "https://support.test"


class FakeBackend:
    """Answers Authenticate / Create / Search with whatever a test scripted."""

    def __init__(self):
        self.routes: dict[str, tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.reachable = True

    def reply(self, op: str, status: int = 200, body: Any = None) -> None:
        self.routes[op] = (status, body)

    def calls(self, op: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/" + op)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.reachable:
            raise httpx.ConnectError("backend unreachable", request=request)
        op = request.url.path.rsplit("/", 1)[-1]
        status, body = self.routes.get(op, (500, None))
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        if isinstance(body, str):
            return httpx.Response(status, content=body.encode())
        return httpx.Response(status)


class FakeHost:
    def __init__(self, email: Optional[str] = "ada@example.com", error: Optional[HostLookupError] = None):
        self.email = email
        self.error = error
        self.lookups: list[TurnContext] = []

    async def get_member(self, turn: TurnContext) -> Member:
        self.lookups.append(turn)
        if self.error is not None:
            raise self.error
        return Member(id=turn.from_id, name="Ada", email=self.email)


def make_turn(user: str = "user-1", conversation: str = "conv-1") -> TurnContext:
    return TurnContext(
        service_url="https://smba.test",
        conversation_id=conversation,
        from_id=user,
        from_name="Ada",
        from_role="user",
        recipient_id="bot-1",
    )


def make_action(
    data: Any = None,
    command_id: str = "createTicket",
    user: str = "user-1",
    subject: Optional[str] = None,
    body: Optional[str] = None,
) -> ActionInvoke:
    payload = MessagePayload(subject=subject, body=body) if subject or body else None
    return ActionInvoke(turn=make_turn(user), command_id=command_id, data=data, message_payload=payload)


def environment(app_id: int = 7, name: str = "Support", fields: Optional[list] = None) -> dict:
    return {
        "id": app_id,
        "name": name,
        "tableId": app_id * 10,
        "fields": fields if fields is not None else [
            {"id": 1, "name": "Summary", "type": "shortText", "required": True},
            {"id": 2, "name": "Details", "type": "longText", "required": False},
            {
                "id": 3,
                "name": "Priority",
                "type": "record",
                "required": False,
                "values": [{"id": 1, "name": "Low"}, {"id": 2, "name": "High"}],
            },
        ],
    }


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def gateway(backend) -> BackendGateway:
    return BackendGateway("https://api.test", "secret-key", transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(ttl_seconds=3600)


@pytest.fixture
def dialog(host, gateway, store) -> ActionDialog:
    return ActionDialog(host, gateway, store, SUPPORT_URL)
