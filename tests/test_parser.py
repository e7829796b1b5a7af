import pytest
from pydantic import ValidationError

from essembi_teams.commands.context import CommandContext
from essembi_teams.commands.search import EMPTY_QUERY, IDENTITY_ERROR
from essembi_teams.errors import SearchFailed
from essembi_teams.host import HostLookupError
from essembi_teams.parser import CommandParser, clean_text
from essembi_teams.schema import ChatMessage, Member

from conftest import FakeHost, make_turn

DOCS_URL = "https://docs.test"


@pytest.fixture
def parser(host, gateway):
    return CommandParser(host, gateway, DOCS_URL, bot_id="bot-1")


def message(text):
    return ChatMessage(turn=make_turn(), text=text)


def card(reply):
    assert reply.text is None
    return reply.attachments[0]["content"]


@pytest.mark.parametrize("raw, expected", [
    ("<at>Essembi</at> search Login", "search Login"),
    ("@Essembi search Login", "search Login"),
    ("  <p>ESSEMBI   help</p> ", "help"),
    ("search Login", "search Login"),
    ("essembi", ""),
    ("Essembian things", "Essembian things"),
])
def test_clean_text(raw, expected):
    assert clean_text(raw) == expected


class TestStaticCommands:
    async def test_help_lists_commands(self, parser):
        body = card(await parser.handle_message(message("<at>Essembi</at> Help me")))["body"]
        texts = " ".join(block["text"] for block in body)
        assert "search <text>" in texts
        assert "doc" in texts

    async def test_doc_links_documentation(self, parser):
        reply = await parser.handle_message(message("where are the docs?"))
        assert card(reply)["actions"][0]["url"] == DOCS_URL

    async def test_anything_else_gets_suggestions(self, parser, backend):
        reply = await parser.handle_message(message("<at>Essembi</at> Printer jam"))

        values = [a["data"]["msteams"]["value"] for a in card(reply)["actions"]]
        assert values == ["doc", "help", "search Printer jam"]
        assert backend.requests == []


class TestSearch:
    async def test_results_card(self, parser, backend):
        backend.reply("Search", 200, {"results": [
            {"url": "https://x/1", "name": "Login broken", "table": "Bugs"},
            {"url": "https://x/2", "name": "Login slow", "table": "Tasks"},
        ]})

        reply = await parser.handle_message(message("<at>Essembi</at> Search Login Page"))

        body = card(reply)["body"]
        assert body[0]["text"] == "Search results for 'Login Page'"
        assert len(body) == 3
        assert backend.calls("Search") == [{"email": "ada@example.com", "query": "Login Page"}]

    async def test_no_results(self, parser, backend):
        backend.reply("Search", 200, {"results": []})

        reply = await parser.handle_message(message("search nothing"))

        assert reply.text == "No results found for 'nothing'."

    async def test_empty_query_never_calls_backend(self, parser, backend):
        reply = await parser.handle_message(message("search   "))

        assert reply.text == EMPTY_QUERY
        assert backend.requests == []

    async def test_backend_failure_is_plain_text(self, parser, backend):
        backend.reply("Search", 500)

        reply = await parser.handle_message(message("search login"))

        assert reply.text == SearchFailed.user_message
        assert reply.attachments == []

    async def test_unreachable_backend_is_plain_text(self, parser, backend):
        backend.reachable = False

        reply = await parser.handle_message(message("search login"))

        assert reply.text == SearchFailed.user_message

    @pytest.mark.parametrize("error", [
        HostLookupError(403, "BotNotInConversationRoster"),
        HostLookupError(500, "InternalServerError"),
    ])
    async def test_identity_failure_is_plain_text(self, gateway, backend, error):
        parser = CommandParser(FakeHost(error=error), gateway, DOCS_URL)

        reply = await parser.handle_message(message("search login"))

        assert reply.text == IDENTITY_ERROR
        assert backend.requests == []

    async def test_searching_is_not_search(self, parser, backend):
        reply = await parser.handle_message(message("searching for help"))
        assert "Essembi for Teams" in card(reply)["body"][0]["text"]
        assert backend.requests == []


class TestWelcome:
    def test_one_card_per_new_member_except_the_app(self, parser):
        members = [Member(id="user-2"), Member(id="bot-1"), Member(id="user-3")]

        replies = parser.welcome(make_turn(), members)

        assert len(replies) == 2
        assert replies[0].attachments[0]["content"]["body"][0]["text"] == "Welcome to Essembi for Teams!"

    def test_recipient_counts_as_the_app(self, host, gateway):
        parser = CommandParser(host, gateway, DOCS_URL)
        assert parser.welcome(make_turn(), [Member(id="bot-1")]) == []


class TestCommandContext:
    def test_carries_registered_commands(self, parser, host):
        context = parser._context(make_turn(), "help")

        assert context.host is host
        assert [c.name for c in context.commands] == ["search", "help", "doc"]

    def test_rejects_something_that_is_not_a_host(self, gateway):
        with pytest.raises(ValidationError):
            CommandContext(turn=make_turn(), host=object(), gateway=gateway, docs_url=DOCS_URL)
