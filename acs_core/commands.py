# acs_core/commands.py
"""
Keyholder command grammar.

    set-status <mode> [message...]
    set-next-status [<mode> [message...]]
    open-door <door>

``parse_command`` turns one command line into a ``SetStatus``,
``SetNextStatus`` or ``OpenDoor`` value. Anything outside the closed
mode/door enumerations is rejected here, before any side effect.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Union

from acs_core.errors import InvalidCommandError


class Mode(IntEnum):
    # 0 is "unknown" in the state files and never a valid request
    NONE = 1
    KEYHOLDER = 2
    MEMBER = 3
    OPEN = 4
    OPEN_PLUS = 5

    @property
    def label(self) -> str:
        return MODE_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> "Mode":
        for mode, name in MODE_LABELS.items():
            if name == label:
                return mode
        raise InvalidCommandError(
            f"unknown mode '{label}', valid modes: {', '.join(MODE_LABELS.values())}"
        )


MODE_LABELS: Dict[Mode, str] = {
    Mode.NONE: "none",
    Mode.KEYHOLDER: "keyholder",
    Mode.MEMBER: "member",
    Mode.OPEN: "open",
    Mode.OPEN_PLUS: "open+",
}

MODE_HELP: Dict[Mode, str] = {
    Mode.NONE: "space is closed, nobody must be inside",
    Mode.KEYHOLDER: "space is closed, keyholder is inside",
    Mode.MEMBER: "space is open, but only for members",
    Mode.OPEN: "space is open, guests may ring the bell",
    Mode.OPEN_PLUS: "space is open, everyone can open the door",
}


class Door(str, Enum):
    MAIN = "main"
    GLASS = "glass"

    @classmethod
    def from_label(cls, label: str) -> "Door":
        try:
            return cls(label)
        except ValueError:
            raise InvalidCommandError(
                f"unknown door '{label}', valid doors: {', '.join(d.value for d in cls)}"
            ) from None


@dataclass(frozen=True)
class SetStatus:
    mode: Mode
    message: str = ""
    keyword = "set-status"


@dataclass(frozen=True)
class SetNextStatus:
    mode: Optional[Mode]  # None clears the announced next status
    message: str = ""
    keyword = "set-next-status"


@dataclass(frozen=True)
class OpenDoor:
    door: Door
    keyword = "open-door"


Command = Union[SetStatus, SetNextStatus, OpenDoor]


def _parse_set_status(args: List[str]) -> SetStatus:
    if not args:
        raise InvalidCommandError(
            f"set-status needs a mode, valid modes: {', '.join(MODE_LABELS.values())}"
        )
    return SetStatus(mode=Mode.from_label(args[0]), message=" ".join(args[1:]))


def _parse_set_next_status(args: List[str]) -> SetNextStatus:
    if not args:
        return SetNextStatus(mode=None)
    return SetNextStatus(mode=Mode.from_label(args[0]), message=" ".join(args[1:]))


def _parse_open_door(args: List[str]) -> OpenDoor:
    if not args:
        raise InvalidCommandError(
            f"open-door needs a door, valid doors: {', '.join(d.value for d in Door)}"
        )
    if len(args) > 1:
        raise InvalidCommandError(f"open-door takes exactly one door, got: {' '.join(args)}")
    return OpenDoor(door=Door.from_label(args[0]))


PARSERS = {
    SetStatus.keyword: _parse_set_status,
    SetNextStatus.keyword: _parse_set_next_status,
    OpenDoor.keyword: _parse_open_door,
}


def _unquote(text: str) -> str:
    """Strip one enclosing pair of matching quotes."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


def split_command(line: str) -> List[str]:
    """
    Split a command line into keyword, mode or door, and message.

    Only the first two words are split on whitespace. The rest of the line
    is kept verbatim as the free-text message, so apostrophes and repeated
    spaces survive.
    """
    parts = line.split(None, 2)
    if len(parts) == 3:
        parts[2] = _unquote(parts[2].strip())
    return parts


def parse_tokens(tokens: List[str]) -> Command:
    if not tokens:
        raise InvalidCommandError("empty command, valid commands: " + ", ".join(PARSERS))
    keyword, args = tokens[0], tokens[1:]
    parser = PARSERS.get(keyword)
    if parser is None:
        raise InvalidCommandError(f"unknown command '{keyword}', valid commands: {', '.join(PARSERS)}")
    return parser(args)


def parse_command(line: str) -> Command:
    return parse_tokens(split_command(line))


def usage(prog: str = "acs-keyholder") -> str:
    lines = [
        f"Usage: {prog} <command> [args...]",
        "",
        "Commands:",
        "\tset-status <mode> [msg...]       set the space status",
        "\tset-next-status [<mode> [msg...]] announce the upcoming status (no mode clears it)",
        "\topen-door <door>                 buzz a door open",
        "",
        "Possible modes:",
    ]
    for mode, label in MODE_LABELS.items():
        lines.append(f"\t{label:<9} - {MODE_HELP[mode]}")
    lines += [
        "",
        "Possible doors:",
        "\t" + ", ".join(d.value for d in Door),
        "",
        "An optional human readable message can be supplied by the keyholder.",
    ]
    return "\n".join(lines)
