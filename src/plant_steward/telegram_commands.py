"""Telegram bot command configuration."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TelegramCommand:
    """Declarative bot command definition."""

    command: str
    description: str

    @property
    def slash(self) -> str:
        """Return the command as typed in chat."""
        return f"/{self.command}"


class BotCommand(Enum):
    """Enum of bot commands (single source of truth)."""

    NEW_PLANTING = TelegramCommand("newplanting", "Document a new planting")
    ADD_PLANT = TelegramCommand("addplant", "Add an existing plant")
    MAP = TelegramCommand("map", "View plants on the map")
    CANCEL = TelegramCommand("cancel", "Cancel and start over")


# Accepted in chat but not advertised in the command menu.
START_COMMAND = "/start"
REPLACE_COMMAND = "/replace"
KEEP_COMMAND = "/keep"


def telegram_commands() -> list[dict[str, str]]:
    """Return commands formatted for Telegram API."""
    return [
        {"command": entry.value.command, "description": entry.value.description}
        for entry in BotCommand
    ]


def command_menu_text() -> str:
    """Return the option list shown when the user is idle."""
    lines = ["Choose an option:", ""]
    lines.extend(
        f"{entry.value.slash} - {entry.value.description}"
        for entry in (BotCommand.NEW_PLANTING, BotCommand.ADD_PLANT, BotCommand.MAP)
    )
    return "\n".join(lines)


CHAT_MENU_BUTTON: dict[str, object] = {"type": "commands"}
