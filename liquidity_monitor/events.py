"""Typed feed events and the decoder for name/value field maps.

Feed handlers deliver each market-data element as a mapping of field
names to string values.  This module is the single place where those
maps are classified and turned into typed events, so the rest of the
package only ever sees :class:`~liquidity_monitor.models.Trade` or
:class:`OrderBookDelta`.

Recognised fields:

* trades — ``LAST_PRICE``, ``LAST_SIZE``, ``IS_BUYER_MAKER`` (``"1"``
  means the buyer was the maker, i.e. a sell aggressor), ``TRADE_ID``;
* order books — ``BID_PRICE_<n>``, ``BID_SIZE_<n>``, ``ASK_PRICE_<n>``,
  ``ASK_SIZE_<n>`` with a zero-based level index ``n``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Mapping

from liquidity_monitor.exceptions import InvalidDataError
from liquidity_monitor.models import OrderBookLevel, Side, Trade

TRADE_PRICE_FIELD = "LAST_PRICE"
TRADE_SIZE_FIELD = "LAST_SIZE"
BUYER_MAKER_FIELD = "IS_BUYER_MAKER"
TRADE_ID_FIELD = "TRADE_ID"

_BOOK_PREFIXES = {
    "BID_PRICE_": ("bid", "price"),
    "BID_SIZE_": ("bid", "size"),
    "ASK_PRICE_": ("ask", "price"),
    "ASK_SIZE_": ("ask", "size"),
}


class EventKind(Enum):
    TRADE = "trade"
    ORDER_BOOK = "order_book"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class BookLevelUpdate:
    """Price and size at one level index of one side."""

    side: Literal["bid", "ask"]
    level: int
    price: float = 0.0
    size: float = 0.0


@dataclass(frozen=True)
class OrderBookDelta:
    """A leveled order-book update, applied as a full replacement."""

    levels: tuple[BookLevelUpdate, ...] = ()

    def to_sides(self) -> tuple[list[OrderBookLevel], list[OrderBookLevel]]:
        """Split the updates into bid and ask levels, in level-index order.

        Only indexes actually present are returned; gaps in the index
        sequence are skipped.  The book cache sorts each side by price.
        """
        sides: dict[str, list[OrderBookLevel]] = {"bid": [], "ask": []}
        for update in sorted(self.levels, key=lambda u: u.level):
            sides[update.side].append(OrderBookLevel(update.price, update.size))
        return sides["bid"], sides["ask"]


MarketEvent = Trade | OrderBookDelta


def classify_fields(fields: Mapping[str, str]) -> EventKind:
    """Classify a field map by the names it contains.

    Trade fields take precedence over order-book fields.
    """
    names = list(fields)
    if any(name in (TRADE_PRICE_FIELD, TRADE_SIZE_FIELD) for name in names):
        return EventKind.TRADE
    if any("BID_PRICE" in name or "ASK_PRICE" in name for name in names):
        return EventKind.ORDER_BOOK
    return EventKind.UNKNOWN


def _to_float(name: str, value: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidDataError(f"field {name} is not a number: {value!r}") from exc


def decode_trade(fields: Mapping[str, str], timestamp_ms: int) -> Trade:
    """Build a :class:`Trade` from a trade field map.

    Missing price or size fields decode as 0 and are rejected by
    :class:`Trade`.

    Raises
    ------
    InvalidDataError
        If a numeric field cannot be parsed.
    InvalidTrade
        If the decoded price or size is not positive.
    """
    price = _to_float(TRADE_PRICE_FIELD, fields.get(TRADE_PRICE_FIELD, "0"))
    size = _to_float(TRADE_SIZE_FIELD, fields.get(TRADE_SIZE_FIELD, "0"))

    side: Side = "unknown"
    if BUYER_MAKER_FIELD in fields:
        side = "sell" if fields[BUYER_MAKER_FIELD] == "1" else "buy"

    return Trade(
        price=price,
        size=size,
        timestamp=int(timestamp_ms),
        side=side,
        trade_id=fields.get(TRADE_ID_FIELD, ""),
    )


def decode_order_book(fields: Mapping[str, str]) -> OrderBookDelta:
    """Build an :class:`OrderBookDelta` from ``BID_/ASK_`` level fields.

    Fields that are not level fields are ignored.

    Raises
    ------
    InvalidDataError
        If a level index or a numeric value cannot be parsed.
    """
    levels: dict[tuple[str, int], dict[str, float]] = {}
    for name, value in fields.items():
        for prefix, (side, attr) in _BOOK_PREFIXES.items():
            if not name.startswith(prefix):
                continue
            suffix = name[len(prefix):]
            if not suffix.isdecimal():
                raise InvalidDataError(f"field {name} has no valid level index")
            levels.setdefault((side, int(suffix)), {})[attr] = _to_float(name, value)
            break

    return OrderBookDelta(
        levels=tuple(
            BookLevelUpdate(side=side, level=level, **values)
            for (side, level), values in sorted(levels.items())
        )
    )


def decode_fields(fields: Mapping[str, str], timestamp_ms: int) -> MarketEvent | None:
    """Classify and decode *fields*; ``None`` when unclassifiable."""
    kind = classify_fields(fields)
    if kind is EventKind.TRADE:
        return decode_trade(fields, timestamp_ms)
    if kind is EventKind.ORDER_BOOK:
        return decode_order_book(fields)
    return None
