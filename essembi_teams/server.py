"""
server.py — HTTP entry point for the Essembi chat integration
==============================================================
What this file does:
  1. Loads Settings and configures logging
  2. Builds the shared pieces once in the app lifespan: backend gateway,
     connector host, session store, action dialog, command parser
  3. Exposes POST /api/messages, which receives platform activities and
     dispatches them by type:
       invoke (composeExtension/*) → ActionDialog
       message                     → CommandParser.handle_message
       conversationUpdate          → CommandParser.welcome
  4. Serves with uvicorn

Authenticating the platform's requests is the job of whatever sits in
front of this app. Unhandled errors go through on_turn_error, which logs
them with the actor's details and answers 500.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from essembi_teams.config import Settings, load_settings, setup_logging
from essembi_teams.dialog import ActionDialog
from essembi_teams.gateway import BackendGateway
from essembi_teams.host import ConnectorHost, Host
from essembi_teams.parser import CommandParser
from essembi_teams.schema import ActionInvoke, ChatMessage, Member, MessagePayload, TurnContext
from essembi_teams.state import SessionStore

logger = logging.getLogger(__name__)

ACTION_INVOKES = {"composeExtension/fetchTask", "composeExtension/submitAction"}


# ── Activity parsing ──────────────────────────────────────────────────────────

def turn_from_activity(activity: dict[str, Any]) -> TurnContext:
    sender = activity.get("from") or {}
    conversation = activity.get("conversation") or {}
    return TurnContext(
        service_url=activity.get("serviceUrl", ""),
        conversation_id=conversation.get("id", ""),
        conversation_type=conversation.get("conversationType"),
        from_id=sender.get("id", ""),
        from_name=sender.get("name"),
        from_role=sender.get("role"),
        recipient_id=(activity.get("recipient") or {}).get("id"),
        channel_data=activity.get("channelData") or {},
    )


def action_from_activity(activity: dict[str, Any], turn: TurnContext) -> ActionInvoke:
    value = activity.get("value") or {}
    payload = value.get("messagePayload")
    message_payload = None
    if payload:
        message_payload = MessagePayload(
            subject=payload.get("subject"),
            body=(payload.get("body") or {}).get("content"),
        )
    return ActionInvoke(
        turn=turn,
        command_id=value.get("commandId", ""),
        data=value.get("data"),
        message_payload=message_payload,
    )


def on_turn_error(turn: Optional[TurnContext], error: Exception, debug: bool = False) -> Response:
    """Log an unhandled error with whatever we know about the sender."""
    if turn is None:
        logger.exception("[on_turn_error] unhandled error: %s", error)
    else:
        logger.exception(
            "[on_turn_error] unhandled error: %s | role=%s name=%s id=%s conversation=%s properties=%s",
            error, turn.from_role, turn.from_name, turn.from_id, turn.conversation_id, turn.channel_data,
        )
    body = {"error": "Sorry, it looks like something went wrong."}
    if debug:
        body["detail"] = f"Exception caught: {error}"
    return JSONResponse(body, status_code=500)


# ── App ───────────────────────────────────────────────────────────────────────

class Integration:
    """The long-lived pieces shared by every request."""

    def __init__(self, settings: Settings, gateway: BackendGateway, host: Host, store: Optional[SessionStore] = None):
        self.settings = settings
        self.gateway = gateway
        self.host = host
        self.store = store or SessionStore(ttl_seconds=settings.session_ttl_seconds)
        self.dialog = ActionDialog(host, gateway, self.store, settings.support_url)
        self.parser = CommandParser(host, gateway, settings.docs_url, bot_id=settings.bot_id)

    async def dispatch(self, activity: dict[str, Any], turn: TurnContext) -> Response:
        kind = activity.get("type")

        if kind == "invoke":
            if activity.get("name") not in ACTION_INVOKES:
                return JSONResponse({})
            response = await self.dialog.handle(action_from_activity(activity, turn))
            return JSONResponse(response)

        if kind == "message":
            reply = await self.parser.handle_message(ChatMessage(turn=turn, text=activity.get("text") or ""))
            return JSONResponse(reply.to_activity())

        if kind == "conversationUpdate":
            added = [Member(id=m.get("id", ""), name=m.get("name")) for m in activity.get("membersAdded") or []]
            replies = self.parser.welcome(turn, added)
            return JSONResponse([reply.to_activity() for reply in replies])

        return Response(status_code=202)


def create_app(settings: Optional[Settings] = None, integration: Optional[Integration] = None) -> Starlette:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        nonlocal integration
        owned = integration is None
        if owned:
            gateway = BackendGateway(
                settings.service_base_url,
                settings.integration_key,
                timeout=settings.backend_timeout_seconds,
            )
            integration = Integration(settings, gateway, ConnectorHost(settings.connector_token))
        app.state.integration = integration
        logger.info("Essembi integration ready (backend %s)", settings.service_base_url)
        try:
            yield
        finally:
            if owned:
                await integration.gateway.aclose()
                await integration.host.aclose()
            logger.info("Essembi integration shutting down.")

    async def messages(request: Request) -> Response:
        turn = None
        try:
            activity = await request.json()
            turn = turn_from_activity(activity)
            return await request.app.state.integration.dispatch(activity, turn)
        except Exception as e:
            return on_turn_error(turn, e, debug=settings.debug)

    return Starlette(
        routes=[Route("/api/messages", messages, methods=["POST"])],
        lifespan=lifespan,
    )


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
