"""
commands/info.py — static ``help`` and ``doc`` commands
"""

from essembi_teams.cards import attachment, doc_card, help_card
from essembi_teams.commands.context import CommandContext
from essembi_teams.schema import Command, Reply

help_command = Command(
    name="help",
    usage="help",
    description="Show what Essembi can do in Teams.",
)

doc_command = Command(
    name="doc",
    usage="doc",
    description="Open the Essembi documentation.",
)


async def show_help(context: CommandContext, argument: str) -> Reply:
    return Reply(attachments=[attachment(help_card(context.commands))])


async def show_doc(context: CommandContext, argument: str) -> Reply:
    return Reply(attachments=[attachment(doc_card(context.docs_url))])
