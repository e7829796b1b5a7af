"""
cards.py — Card rendering for the chat surface
===============================================
Pure functions: domain values in, card JSON out. Nothing here talks to
the network or the session store, so every card can be asserted on
directly in tests.

Two layers:
  1. build_form() turns an environment's field schema into an ordered
     list of InputSpec. It knows nothing about card formats.
  2. The *_card / *_response functions turn values (including InputSpecs)
     into adaptive cards, hero cards and the task-module / compose
     extension envelopes the platform expects.

Static templates (install prompt, not-ready prompt) are bundled JSON
files under resources/ and loaded by file name.
"""

import json
from importlib import resources
from typing import Any, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field

from essembi_teams.schema import Command, Environment, EnvironmentField, SearchResult, TicketResult
from essembi_teams.text import first_line

ADAPTIVE_CARD = "application/vnd.microsoft.card.adaptive"
HERO_CARD = "application/vnd.microsoft.card.hero"
CARD_VERSION = "1.0"

# Forms with more inputs than this get the large task module.
COMPACT_FORM_LIMIT = 5


# ── Form synthesis ────────────────────────────────────────────────────────────

class InputSpec(BaseModel):
    """One input of a synthesized form, independent of the card format."""

    kind: Literal["text", "choice"]
    id: str
    label: str
    required: bool = False
    value: str = ""
    multiline: bool = False
    choices: list[tuple[str, str]] = Field(default_factory=list)


def build_form(
    fields: Iterable[EnvironmentField],
    subject: Optional[str] = None,
    body: Optional[str] = None,
) -> list[InputSpec]:
    """
    Lay out the entry form for an environment.

    Fields are sorted by name, then emitted in three groups:
    shortText, record, longText. The first shortText input is prefilled
    with ``subject`` and the first longText input with ``body``; later
    inputs of the same type start empty. When there is no subject, the
    first non-empty line of the body stands in for it.
    """
    if not subject and body:
        subject = first_line(body)

    ordered = sorted(fields, key=lambda f: f.name)
    inputs: list[InputSpec] = []

    for field in (f for f in ordered if f.type == "shortText"):
        inputs.append(InputSpec(
            kind="text",
            id=str(field.id),
            label=field.name,
            required=field.required,
            value=subject or "",
        ))
        subject = None

    for field in (f for f in ordered if f.type == "record"):
        inputs.append(InputSpec(
            kind="choice",
            id=str(field.id),
            label=field.name,
            required=field.required,
            choices=[(v.name, str(v.id)) for v in field.values or []],
        ))

    for field in (f for f in ordered if f.type == "longText"):
        inputs.append(InputSpec(
            kind="text",
            id=str(field.id),
            label=field.name,
            required=field.required,
            value=body or "",
            multiline=True,
        ))
        body = None

    return inputs


# ── Adaptive card primitives ──────────────────────────────────────────────────

def text_block(text: str, **extra: Any) -> dict:
    return {"type": "TextBlock", "text": text, "wrap": True, **extra}


def open_url_action(title: str, url: str) -> dict:
    return {"type": "Action.OpenUrl", "title": title, "url": url}


def submit_action(data: dict, title: str = "Submit") -> dict:
    return {"type": "Action.Submit", "title": title, "data": data}


def adaptive_card(body: list[dict], actions: Optional[list[dict]] = None) -> dict:
    card = {
        "type": "AdaptiveCard",
        "version": CARD_VERSION,
        "body": body,
    }
    if actions:
        card["actions"] = actions
    return card


def attachment(card: dict, content_type: str = ADAPTIVE_CARD) -> dict:
    return {"contentType": content_type, "content": card}


def render_input(spec: InputSpec) -> dict:
    element = {
        "type": "Input.Text" if spec.kind == "text" else "Input.ChoiceSet",
        "id": spec.id,
        "label": spec.label,
        "isRequired": spec.required,
    }
    if spec.kind == "choice":
        element["choices"] = [{"title": title, "value": value} for title, value in spec.choices]
        return element

    element["value"] = spec.value
    if spec.multiline:
        element["isMultiline"] = True
    return element


# ── Task module envelopes ─────────────────────────────────────────────────────
# Height/width are either named sizes or pixel counts.

Size = Union[str, int]


def task_response(card_attachment: dict, title: str, height: Size = "small", width: Size = "small") -> dict:
    return {
        "task": {
            "type": "continue",
            "value": {
                "card": card_attachment,
                "height": height,
                "width": width,
                "title": title,
            },
        }
    }


def empty_response() -> dict:
    return {}


def error_card(message: str, support_url: str) -> dict:
    return adaptive_card(
        [text_block(message)],
        [open_url_action("Contact Support", support_url)],
    )


def error_response(message: str, support_url: str) -> dict:
    return task_response(attachment(error_card(message, support_url)), "An Issue has Occurred")


def environment_choice_response(apps: Iterable[Environment], email: str) -> dict:
    card = adaptive_card(
        [
            text_block(
                "You have access to multiple Essembi environments. "
                "Select the environment you want to create a ticket in."
            ),
            {
                "type": "Input.ChoiceSet",
                "id": "environment",
                "label": "Select Environment",
                "isRequired": True,
                "choices": [{"title": app.name, "value": str(app.id)} for app in apps],
            },
        ],
        [submit_action({"email": email})],
    )
    return task_response(attachment(card), "Choose Your Essembi Environment")


def form_card(inputs: list[InputSpec], email: str, environment: Environment) -> dict:
    return adaptive_card(
        [render_input(spec) for spec in inputs],
        [submit_action({"email": email, "appId": environment.id, "tableId": environment.table_id})],
    )


def form_response(environment: Environment, email: str, subject: Optional[str], body: Optional[str]) -> dict:
    inputs = build_form(environment.fields, subject, body)
    card = form_card(inputs, email, environment)
    height = "medium" if len(card["body"]) <= COMPACT_FORM_LIMIT else "large"
    return task_response(attachment(card), "Create a Ticket in Essembi", height=height, width="medium")


# ── Ticket result ─────────────────────────────────────────────────────────────

def ticket_title(result: TicketResult) -> str:
    if result.number:
        return f"Ticket #{result.number} has been created!"
    return "Ticket has been created!"


def ticket_result_card(result: TicketResult) -> dict:
    view = {"type": "openUrl", "title": "View Ticket", "value": result.url}
    return {
        "title": ticket_title(result),
        "subtitle": f"Summary: {result.name}",
        "text": "A ticket has been created successfully. You may now view this ticket in Essembi.",
        "tap": view,
        "buttons": [view],
    }


def ticket_result_response(result: TicketResult) -> dict:
    hero = ticket_result_card(result)
    return {
        "composeExtension": {
            "type": "result",
            "attachmentLayout": "list",
            "attachments": [
                {
                    "contentType": HERO_CARD,
                    "content": hero,
                    "preview": attachment(hero, HERO_CARD),
                }
            ],
        }
    }


# ── Bundled templates ─────────────────────────────────────────────────────────

def load_card_template(file_name: str) -> dict:
    """Read a bundled card from resources/ and wrap it as an attachment."""
    text = resources.files("essembi_teams").joinpath("resources", file_name).read_text(encoding="utf-8")
    return attachment(json.loads(text))


def template_response(file_name: str, title: str, height: Size = 200, width: Size = 400) -> dict:
    return task_response(load_card_template(file_name), title, height=height, width=width)


# ── Message cards (command parser) ────────────────────────────────────────────

def search_results_card(query: str, results: list[SearchResult]) -> dict:
    body = [text_block(f"Search results for '{query}'", size="Large", weight="Bolder")]
    body.extend(text_block(f"**{r.table}**: [{r.name}]({r.url})") for r in results)
    return adaptive_card(body)


def _command_lines(commands: Iterable[Command]) -> list[dict]:
    return [text_block(f"**{c.usage}**: {c.description}") for c in commands]


def help_card(commands: Iterable[Command]) -> dict:
    body = [
        text_block("Essembi for Teams", size="Large", weight="Bolder"),
        text_block(
            "Create a ticket from the compose box, or from the \"...\" menu of any "
            "message to turn that message into a ticket."
        ),
        text_block("You can also mention me in a channel with one of these commands:"),
    ]
    body.extend(_command_lines(commands))
    return adaptive_card(body)


def welcome_card(commands: Iterable[Command], docs_url: str) -> dict:
    card = help_card(commands)
    card["body"][0] = text_block("Welcome to Essembi for Teams!", size="Large", weight="Bolder")
    card["body"].append(text_block(
        "To get started, an Essembi administrator must enable the Teams integration "
        "in Settings > Integrations. Your Teams email address must match your Essembi account."
    ))
    card["actions"] = [open_url_action("View Documentation", docs_url)]
    return card


def doc_card(docs_url: str) -> dict:
    return adaptive_card(
        [text_block("The Essembi documentation covers setting up the Teams integration and creating tickets.")],
        [open_url_action("View Documentation", docs_url)],
    )


def _quick_reply(title: str, value: str) -> dict:
    return submit_action({"msteams": {"type": "imBack", "value": value}}, title=title)


def suggestion_card(text: str) -> dict:
    return adaptive_card(
        [text_block("Sorry, I didn't understand that. Did you mean one of these?")],
        [
            _quick_reply("doc", "doc"),
            _quick_reply("help", "help"),
            _quick_reply(f"search {text}", f"search {text}"),
        ],
    )
