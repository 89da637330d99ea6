from __future__ import annotations

import logging
import re
from enum import IntEnum
from typing import Callable, Dict, List, Sequence, Tuple, Type

from eventrelay.dispatcher import Dispatcher
from eventrelay.events import Event
from eventrelay.exceptions import MalformedEvent
from eventrelay.hashing import hash_identifier
from eventrelay.payloads import (
    UINT32_MAX,
    Payment,
    PaymentCompleted,
    RoutedEvent,
    Topology,
    TopologySnapshot,
    TrustLine,
    TrustLineClosed,
    TrustLineOpened,
)

logger = logging.getLogger(__name__)

_UNSIGNED_RE = re.compile(r"[0-9]+")
_UINT32_DIGITS = len(str(UINT32_MAX))


class Opcode(IntEnum):
    TOPOLOGY = 0
    TRUSTLINE_OPENED = 1
    TRUSTLINE_CLOSED = 2
    PAYMENT = 3


TOPOLOGY_ENDPOINT = "/api/v1/node-topology"
TRUSTLINE_ENDPOINT = "/api/v1/trustline"
PAYMENT_ENDPOINT = "/api/v1/payment"

ROUTES: Dict[Type, Tuple[str, str]] = {
    TopologySnapshot: (TOPOLOGY_ENDPOINT, "POST"),
    TrustLineOpened: (TRUSTLINE_ENDPOINT, "POST"),
    TrustLineClosed: (TRUSTLINE_ENDPOINT, "DELETE"),
    PaymentCompleted: (PAYMENT_ENDPOINT, "POST"),
}


# ----------------------------
# Helpers
# ----------------------------
def _parse_unsigned(token: str, field: str, upper: int = UINT32_MAX) -> int:
    if not _UNSIGNED_RE.fullmatch(token):
        raise MalformedEvent(f"invalid {field} {token!r}")
    digits = token.lstrip("0") or "0"
    if len(digits) > _UINT32_DIGITS:
        raise MalformedEvent(f"{field} has {len(digits)} digits, out of range")
    value = int(digits)
    if value > upper:
        raise MalformedEvent(f"{field} {token!r} is out of range")
    return value

def _require_tokens(event: Event, count: int, *, exact: bool = False) -> None:
    n = len(event.tokens)
    if (exact and n != count) or n < count:
        expected = f"exactly {count}" if exact else f"at least {count}"
        raise MalformedEvent(f"invalid tokens count {n}, expected {expected}")


def split_payment_paths(tokens: Sequence[str], destination: str) -> Tuple[List[List[str]], List[str]]:
    """
    Splits concatenated payment routes into separate hashed paths.

    Every route ends with the destination identifier, so each raw occurrence of
    `destination` closes the current path (the destination itself included).
    Returns the completed paths and the raw tokens left unflushed at the end.
    """
    paths: List[List[str]] = []
    current: List[str] = []
    for token in tokens:
        current.append(token)
        if token == destination:
            paths.append([hash_identifier(t) for t in current])
            current = []
    return paths, current


# ----------------------------
# Builders
# ----------------------------
def _build_topology(event: Event) -> TopologySnapshot:
    _require_tokens(event, 3)
    tokens = event.tokens
    equivalent = _parse_unsigned(tokens[0], "equivalent")
    neighbors_count = _parse_unsigned(tokens[2], "neighbors count")
    available = len(tokens) - 3
    if neighbors_count != available:
        raise MalformedEvent(f"declared {neighbors_count} neighbors, got {available}")

    return TopologySnapshot(Topology(
        node_hash=hash_identifier(tokens[1]),
        equivalent=equivalent,
        neighbors=[hash_identifier(t) for t in tokens[3:]],
    ))

def _build_trustline_opened(event: Event) -> TrustLineOpened:
    _require_tokens(event, 3, exact=True)
    equivalent = _parse_unsigned(event.tokens[0], "equivalent")
    return TrustLineOpened(TrustLine(
        source_hash=hash_identifier(event.tokens[1]),
        destination_hash=hash_identifier(event.tokens[2]),
        equivalent=equivalent,
    ))

def _build_trustline_closed(event: Event) -> TrustLineClosed:
    _require_tokens(event, 3, exact=True)
    return TrustLineClosed(TrustLine(
        source_hash=hash_identifier(event.tokens[1]),
        destination_hash=hash_identifier(event.tokens[2]),
    ))

def _build_payment(event: Event) -> PaymentCompleted:
    _require_tokens(event, 4)
    tokens = event.tokens
    equivalent = _parse_unsigned(tokens[0], "equivalent")
    destination = tokens[3]

    paths, trailing = split_payment_paths(tokens[4:], destination)
    if trailing:
        logger.warning(
            "payment %s: dropped %d trailing path tokens not terminated by the receiver",
            tokens[1], len(trailing),
        )

    return PaymentCompleted(Payment(
        source_hash=hash_identifier(tokens[2]),
        destination_hash=hash_identifier(destination),
        transaction_id=tokens[1] or None,
        equivalent=equivalent,
        paths=paths,
    ))


_BUILDERS: Dict[int, Callable[[Event], RoutedEvent]] = {
    Opcode.TOPOLOGY: _build_topology,
    Opcode.TRUSTLINE_OPENED: _build_trustline_opened,
    Opcode.TRUSTLINE_CLOSED: _build_trustline_closed,
    Opcode.PAYMENT: _build_payment,
}


def build_routed_event(event: Event) -> RoutedEvent:
    """Turns a decoded event into its typed variant; raises MalformedEvent."""
    builder = _BUILDERS.get(event.opcode)
    if builder is None:
        raise MalformedEvent(f"unexpected event type {event.opcode}")
    return builder(event)


class Router:
    """Builds the payload for each decoded event and hands it to the dispatcher."""

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher

    def route(self, event: Event) -> None:
        if not event.ok:
            logger.error("refusing to route undecoded event: %s", event.error)
            return

        try:
            routed = build_routed_event(event)
        except MalformedEvent as exc:
            logger.error(
                "dropped malformed event: opcode=%d tokens=%d: %s",
                event.opcode, len(event.tokens), exc,
            )
            return

        endpoint, method = ROUTES[type(routed)]
        logger.info("%s event: %s", type(routed).__name__, routed.payload)
        self.dispatcher.send(routed.payload, endpoint, method)
