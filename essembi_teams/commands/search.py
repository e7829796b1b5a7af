"""
commands/search.py — the ``search`` command
============================================
``search <text>`` looks the sender up on the chat platform, then asks
Essembi for matching tickets. Everything that goes wrong here is
reported as a plain chat message; there is no card flow to fall back to.
"""

import logging

from essembi_teams.cards import attachment, search_results_card
from essembi_teams.commands.context import CommandContext
from essembi_teams.errors import EssembiError
from essembi_teams.host import resolve_identity
from essembi_teams.schema import Command, Reply

logger = logging.getLogger(__name__)

IDENTITY_ERROR = (
    "I couldn't look up your Teams account in this conversation. "
    "Make sure Essembi is installed here and try again."
)
EMPTY_QUERY = "Tell me what to search for, for example: search login issue"

search_command = Command(
    name="search",
    usage="search <text>",
    description="Search Essembi for tickets matching the text.",
)


async def search(context: CommandContext, argument: str) -> Reply:
    query = argument.strip()

    lookup = await resolve_identity(context.host, context.turn)
    if not lookup.ok or not lookup.member.email:
        if lookup.error is not None:
            logger.warning("search: roster lookup failed (%s): %s", lookup.outcome.value, lookup.error)
        return Reply(text=IDENTITY_ERROR)

    if not query:
        return Reply(text=EMPTY_QUERY)

    try:
        results = await context.gateway.search(lookup.member.email, query)
    except EssembiError as e:
        return Reply(text=e.user_message)

    if not results:
        return Reply(text=f"No results found for '{query}'.")
    return Reply(attachments=[attachment(search_results_card(query, results))])
