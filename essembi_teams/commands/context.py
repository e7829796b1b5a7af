from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from essembi_teams.gateway import BackendGateway
from essembi_teams.host import Host
from essembi_teams.schema import Command, TurnContext


class CommandContext(BaseModel):
    """Everything a command handler may need for one message."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    turn: TurnContext
    host: Host
    gateway: BackendGateway
    docs_url: str
    commands: list[Command] = Field(default_factory=list)
    text: str = ""
    bot_id: Optional[str] = None
