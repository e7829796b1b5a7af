"""
dialog.py — The compose-box ticket creation dialog
===================================================
Creating a ticket from the compose box takes up to three round trips
with the chat client:

  fetch   → we look the user up and show either the entry form or, when
            they can file into several environments, an environment picker
  choose  → (picker only) the user picked an environment; show its form
  submit  → the user filled the form; create the ticket, show the result

Each inbound action is one run of a LangGraph state graph. The graph
routes on the shape of the action payload, and every node either
enriches the state or writes the final ``response`` and ends the run:

    [START] ─ route_action ─┬─ no_op ─────────────────────────────────────┐
                            ├─ malformed ─────────────────────────────────┤
                            ├─ resolve_member → authenticate ─┬─ show_form ┤
                            │                                 └─ ask_environment
                            ├─ choose_environment → show_form ────────────┤
                            └─ submit_ticket ─────────────────────────────┴─ [END]

The only state carried between runs is the PendingSelection written by
ask_environment and consumed by choose_environment.
"""

import json
import logging
from typing import Any, Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from essembi_teams.cards import (
    empty_response,
    environment_choice_response,
    error_response,
    form_response,
    template_response,
    ticket_result_response,
)
from essembi_teams.errors import (
    AccountNotFound,
    EnvironmentNotFound,
    EssembiError,
    InvalidInput,
    NoEnvironmentsConfigured,
    SessionExpired,
)
from essembi_teams.gateway import BackendGateway
from essembi_teams.host import Host, LookupOutcome, resolve_identity
from essembi_teams.schema import ActionInvoke, Environment, MessagePayload, PendingSelection, TicketSubmission
from essembi_teams.state import SessionStore
from essembi_teams.text import normalize_line_breaks, strip_markup

logger = logging.getLogger(__name__)

TICKET_COMMANDS = {"createTicket", "createTicketMessage"}

INSTALL_CARD = "justintimeinstallation.json"
NOT_READY_CARD = "botnotready.json"


class DialogState(TypedDict, total=False):
    action: ActionInvoke
    email: str
    subject: Optional[str]
    body: Optional[str]
    apps: list[Environment]
    environment: Environment
    response: dict


# ── Payload helpers ───────────────────────────────────────────────────────────

def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def build_submission(data: dict[str, Any]) -> TicketSubmission:
    """
    Turn a submitted form into the backend's create request.

    ``appId`` and ``tableId`` become request fields; every other key,
    ``email`` included, is sent as a value with its line breaks
    normalized.
    """
    try:
        app_id = int(_as_text(data["appId"]))
        table_id = int(_as_text(data["tableId"]))
    except (KeyError, ValueError) as e:
        raise InvalidInput() from e

    values = {
        key: normalize_line_breaks(_as_text(value))
        for key, value in data.items()
        if key not in ("appId", "tableId")
    }
    return TicketSubmission(email=_as_text(data.get("email")), appId=app_id, tableId=table_id, values=values)


def message_text(payload: Optional[MessagePayload]) -> tuple[Optional[str], Optional[str]]:
    """Subject and plain-text body of the message an action was launched from."""
    if payload is None:
        return None, None
    body = strip_markup(payload.body) if payload.body is not None else None
    return payload.subject, body


# ── Graph ─────────────────────────────────────────────────────────────────────

def route_action(state: DialogState) -> str:
    action = state["action"]
    if action.command_id not in TICKET_COMMANDS:
        return "ignore"
    if action.data is None:
        return "fetch"
    if not isinstance(action.data, dict):
        return "malformed"
    if "environment" in action.data:
        return "choose"
    if "appId" not in action.data:
        # Just-in-time installation posts back with neither key.
        return "install_probe"
    return "submit"


def _finished(state: DialogState) -> bool:
    return state.get("response") is not None


def _then(next_node: str):
    def route(state: DialogState) -> str:
        return END if _finished(state) else next_node
    return route


def build_dialog_graph(host: Host, gateway: BackendGateway, store: SessionStore, support_url: str):
    """
    Build and compile the dialog graph.

    Parameters
    ----------
    host        : roster lookups on the chat platform
    gateway     : the Essembi integrations API
    store       : where pending environment choices live between turns
    support_url : linked from every error card

    Returns
    -------
    A compiled graph; invoke it with {"action": ActionInvoke} and read
    ``response`` from the final state.
    """

    def fail(error: EssembiError) -> dict:
        return {"response": error_response(error.user_message, support_url)}

    # ── Nodes ─────────────────────────────────────────────────────────────────

    def no_op(state: DialogState) -> dict:
        return {"response": empty_response()}

    def malformed(state: DialogState) -> dict:
        return fail(InvalidInput())

    async def resolve_member(state: DialogState) -> dict:
        action = state["action"]
        turn = action.turn
        # A new dialog abandons any earlier environment choice.
        store.clear(turn.conversation_id, turn.from_id)

        lookup = await resolve_identity(host, turn)
        if lookup.outcome is LookupOutcome.NOT_INSTALLED:
            return {"response": template_response(INSTALL_CARD, "Adaptive Card - App Installation")}
        if lookup.outcome is LookupOutcome.UNREADY:
            return {"response": template_response(NOT_READY_CARD, "Essembi Is Not Ready")}
        if not lookup.ok:
            logger.warning("Unclassified roster lookup failure for %s in %s", turn.from_id, turn.conversation_id)
            raise lookup.error

        email = lookup.member.email
        if not email:
            return fail(AccountNotFound())

        subject, body = message_text(action.message_payload)
        return {"email": email, "subject": subject, "body": body}

    async def authenticate(state: DialogState) -> dict:
        try:
            identity = await gateway.authenticate(state["email"])
        except EssembiError as e:
            return fail(e)

        apps = identity.environments
        if not apps:
            return fail(NoEnvironmentsConfigured())
        if len(apps) == 1:
            return {"apps": apps, "environment": apps[0]}
        return {"apps": apps}

    def after_authenticate(state: DialogState) -> str:
        if _finished(state):
            return END
        return "show_form" if state.get("environment") is not None else "ask_environment"

    def ask_environment(state: DialogState) -> dict:
        turn = state["action"].turn
        selection = PendingSelection(
            apps=state["apps"],
            email=state["email"],
            subject=state.get("subject"),
            body=state.get("body"),
        )
        store.save(turn.conversation_id, turn.from_id, selection)
        return {"response": environment_choice_response(selection.apps, selection.email)}

    def choose_environment(state: DialogState) -> dict:
        action = state["action"]
        turn = action.turn
        pending = store.load(turn.conversation_id, turn.from_id)
        if pending is None:
            return fail(SessionExpired())
        store.clear(turn.conversation_id, turn.from_id)

        try:
            app_id = int(_as_text(action.data["environment"]))
        except ValueError:
            return fail(EnvironmentNotFound())

        environment = next((app for app in pending.apps if app.id == app_id), None)
        if environment is None:
            return fail(EnvironmentNotFound())

        return {
            "environment": environment,
            "email": pending.email,
            "subject": pending.subject,
            "body": pending.body,
        }

    def show_form(state: DialogState) -> dict:
        response = form_response(state["environment"], state["email"], state.get("subject"), state.get("body"))
        return {"response": response}

    async def submit_ticket(state: DialogState) -> dict:
        try:
            submission = build_submission(state["action"].data)
            result = await gateway.create(submission)
        except EssembiError as e:
            return fail(e)
        logger.info("Created ticket %s in app %s", result.number or result.name, submission.app_id)
        return {"response": ticket_result_response(result)}

    # ── Graph assembly ────────────────────────────────────────────────────────
    graph_builder = StateGraph(DialogState)

    graph_builder.add_node("no_op", no_op)
    graph_builder.add_node("malformed", malformed)
    graph_builder.add_node("resolve_member", resolve_member)
    graph_builder.add_node("authenticate", authenticate)
    graph_builder.add_node("ask_environment", ask_environment)
    graph_builder.add_node("choose_environment", choose_environment)
    graph_builder.add_node("show_form", show_form)
    graph_builder.add_node("submit_ticket", submit_ticket)

    graph_builder.add_conditional_edges(START, route_action, {
        "ignore": "no_op",
        "install_probe": "no_op",
        "malformed": "malformed",
        "fetch": "resolve_member",
        "choose": "choose_environment",
        "submit": "submit_ticket",
    })
    graph_builder.add_conditional_edges("resolve_member", _then("authenticate"), ["authenticate", END])
    graph_builder.add_conditional_edges("authenticate", after_authenticate, ["show_form", "ask_environment", END])
    graph_builder.add_conditional_edges("choose_environment", _then("show_form"), ["show_form", END])

    for terminal in ("no_op", "malformed", "ask_environment", "show_form", "submit_ticket"):
        graph_builder.add_edge(terminal, END)

    return graph_builder.compile()


class ActionDialog:
    """Entry point for compose-box actions."""

    def __init__(self, host: Host, gateway: BackendGateway, store: SessionStore, support_url: str):
        self.graph = build_dialog_graph(host, gateway, store, support_url)

    async def handle(self, action: ActionInvoke) -> dict:
        final_state = await self.graph.ainvoke({"action": action})
        return final_state.get("response", empty_response())
