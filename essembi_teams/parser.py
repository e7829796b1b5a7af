"""
parser.py — Free-text commands in channels and group chats
===========================================================
Messages addressed to the app arrive as HTML, usually starting with the
mention that addressed it. Before dispatching we:

  1. strip the markup and surrounding whitespace
  2. drop a leading @mention token
  3. drop a leading "essembi" token (what a mention becomes once the
     <at> tag is stripped)

Matching is case-insensitive, but handlers receive the original text so
a search query keeps its case. Anything we do not recognise gets a
suggestion card offering doc, help, or a search for what was typed.

New conversation members get a welcome card, except the app itself.
"""

import logging
from typing import Iterable, Optional

from essembi_teams.cards import attachment, suggestion_card, welcome_card
from essembi_teams.commands import commands
from essembi_teams.commands.context import CommandContext
from essembi_teams.gateway import BackendGateway
from essembi_teams.host import Host
from essembi_teams.schema import ChatMessage, Member, Reply, TurnContext
from essembi_teams.text import strip_markup

logger = logging.getLogger(__name__)

PRODUCT_TOKEN = "essembi"


def _drop_first_word(text: str) -> str:
    parts = text.split(None, 1)
    return parts[1].strip() if len(parts) > 1 else ""


def clean_text(raw: str) -> str:
    """Plain message text with the leading mention and product name removed."""
    text = strip_markup(raw).strip()
    if text.startswith("@"):
        text = _drop_first_word(text)
    words = text.split(None, 1)
    if words and words[0].casefold() == PRODUCT_TOKEN:
        text = _drop_first_word(text)
    return text


class CommandParser:
    def __init__(self, host: Host, gateway: BackendGateway, docs_url: str, bot_id: Optional[str] = None):
        self.host = host
        self.gateway = gateway
        self.docs_url = docs_url
        self.bot_id = bot_id

    @property
    def registered(self):
        return [entry["command"] for entry in commands.values()]

    def _context(self, turn: TurnContext, text: str) -> CommandContext:
        return CommandContext(
            turn=turn,
            host=self.host,
            gateway=self.gateway,
            docs_url=self.docs_url,
            commands=self.registered,
            text=text,
            bot_id=self.bot_id,
        )

    async def handle_message(self, message: ChatMessage) -> Reply:
        text = clean_text(message.text)
        folded = text.casefold()
        words = text.split(None, 1)
        first = words[0] if words else ""
        rest = words[1] if len(words) > 1 else ""
        context = self._context(message.turn, text)

        for name, entry in commands.items():
            if entry["match"] == "prefix":
                if first.casefold() == name:
                    logger.debug("Dispatching %r to %s", text, name)
                    return await entry["handler"](context, rest)
            elif name in folded:
                logger.debug("Dispatching %r to %s", text, name)
                return await entry["handler"](context, text)

        return Reply(attachments=[attachment(suggestion_card(text))])

    def welcome(self, turn: TurnContext, members_added: Iterable[Member]) -> list[Reply]:
        own_ids = {self.bot_id, turn.recipient_id} - {None}
        card = welcome_card(self.registered, self.docs_url)
        return [
            Reply(attachments=[attachment(card)])
            for member in members_added
            if member.id not in own_ids
        ]
