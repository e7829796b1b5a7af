from essembi_teams.commands.info import doc_command, help_command, show_doc, show_help
from essembi_teams.commands.search import search, search_command

# Registry mapping command name -> {"command": Command, "handler": coroutine, "match": ...}
# "prefix" commands must be the first word of the message and receive the rest
# of it as their argument; "contains" commands fire when the word appears
# anywhere. Entries are tried in order. The help card lists this table.
commands = {
    search_command.name: {"command": search_command, "handler": search,    "match": "prefix"},
    help_command.name:   {"command": help_command,   "handler": show_help, "match": "contains"},
    doc_command.name:    {"command": doc_command,    "handler": show_doc,  "match": "contains"},
}
