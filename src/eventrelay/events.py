from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

DELIMITER = b"\n"
SEPARATOR = "\t"

# opcodes are small; the digit bound keeps int() away from oversized fields
_OPCODE_RE = re.compile(r"[+-]?[0-9]{1,18}")


@dataclass(frozen=True)
class Event:
    """One decoded line of the events pipe.

    `error` is set when the line couldn't be decoded; such events carry no
    tokens and must not be routed.
    """

    opcode: int = -1
    tokens: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_event(raw: bytes) -> Event:
    """
    Parses a raw line, e.g. b"1\\t12\\tnode-a\\tnode-b\\n".

    Always returns an Event; failures are reported through `Event.error`.
    """
    body = raw[:-1] if raw.endswith(DELIMITER) else raw
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return Event(error="Can't decode event bytes as UTF-8.")

    tokens = text.split(SEPARATOR)
    if not _OPCODE_RE.fullmatch(tokens[0]):
        return Event(error="Can't parse event code.")

    return Event(opcode=int(tokens[0]), tokens=tuple(tokens[1:]))
