"""Market line index built from Odds API v4 event payloads."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from prop_prophet.normalize import normalize_player_name, safe_float
from prop_prophet.stats import MARKET_KEYS
from prop_prophet.time_utils import parse_iso_z

logger = logging.getLogger(__name__)

SIDE_NAMES = {"over", "under"}


@dataclass(frozen=True)
class MarketQuote:
    player: str
    market: str
    point: float
    price: float | None
    book: str
    event_id: str
    start_time: datetime | None


@dataclass(frozen=True)
class EventInfo:
    event_id: str
    home_team: str
    away_team: str
    start_time: datetime | None
    spread: float | None
    total: float | None

    @property
    def teams(self) -> frozenset[str]:
        return frozenset(
            name.strip().lower() for name in (self.home_team, self.away_team) if name.strip()
        )


@dataclass(frozen=True)
class MarketLine:
    """Consensus line for one player/market: the quote average rounded to the half point."""

    line: float
    quotes: tuple[MarketQuote, ...]
    event: EventInfo | None

    @property
    def start_time(self) -> datetime | None:
        if self.event is not None and self.event.start_time is not None:
            return self.event.start_time
        return self.quotes[0].start_time if self.quotes else None

    @property
    def spread(self) -> float | None:
        return self.event.spread if self.event is not None else None

    @property
    def total(self) -> float | None:
        return self.event.total if self.event is not None else None


def round_half(value: float) -> float:
    """Round to the nearest 0.5; exact quarter points round up."""
    return math.floor(value * 2 + 0.5) / 2


def _expect_dict(value: Any, context: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{context} must be an object")
    return value


def _expect_list(value: Any, context: str) -> list[Any]:
    if not isinstance(value, list):
        raise ValueError(f"{context} must be a list")
    return value


def _outcome_player(outcome: dict[str, Any]) -> str:
    name = str(outcome.get("name", "") or "").strip()
    description = str(outcome.get("description", "") or "").strip()
    if name.lower() in SIDE_NAMES:
        return description
    return description or name


def _first_point(outcomes: list[Any]) -> float | None:
    for outcome in outcomes:
        point = safe_float(_expect_dict(outcome, "event_outcome").get("point"))
        if point is not None:
            return point
    return None


def _mean(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


class MarketLineIndex:
    """Multi-valued map ``(normalized player name, market key) -> quotes``.

    Quotes from events that have already started are never indexed.
    """

    def __init__(self) -> None:
        self._quotes: dict[tuple[str, str], list[MarketQuote]] = defaultdict(list)
        self._events: dict[str, EventInfo] = {}
        self.skipped_started = 0

    def __len__(self) -> int:
        return len(self._quotes)

    def __bool__(self) -> bool:
        return bool(self._quotes)

    @property
    def events(self) -> list[EventInfo]:
        return list(self._events.values())

    def add(self, quote: MarketQuote) -> None:
        self._quotes[(normalize_player_name(quote.player), quote.market)].append(quote)

    def quotes_for(self, name_norm: str, market_key: str) -> list[MarketQuote]:
        return list(self._quotes.get((name_norm, market_key), []))

    def line_for(self, name_norm: str, market_key: str) -> MarketLine | None:
        quotes = self._quotes.get((name_norm, market_key))
        if not quotes:
            return None
        average = sum(quote.point for quote in quotes) / len(quotes)
        return MarketLine(
            line=round_half(average),
            quotes=tuple(quotes),
            event=self._events.get(quotes[0].event_id),
        )

    def _add_event(self, event: dict[str, Any], now: datetime) -> None:
        event_id = str(event.get("id", ""))
        start_time = parse_iso_z(str(event.get("commence_time", "") or ""))
        if start_time is not None and start_time <= now:
            self.skipped_started += 1
            return

        spreads: list[float] = []
        totals: list[float] = []
        bookmakers = _expect_list(event.get("bookmakers", []), "event.bookmakers")
        for bookmaker in bookmakers:
            book = _expect_dict(bookmaker, "event_bookmaker")
            book_key = str(book.get("key", ""))
            for market in _expect_list(book.get("markets", []), "event_bookmaker.markets"):
                market_dict = _expect_dict(market, "event_market")
                market_key = str(market_dict.get("key", ""))
                outcomes = _expect_list(market_dict.get("outcomes", []), "event_market.outcomes")
                if market_key == "spreads":
                    point = _first_point(outcomes)
                    if point is not None:
                        spreads.append(abs(point))
                    continue
                if market_key == "totals":
                    point = _first_point(outcomes)
                    if point is not None:
                        totals.append(point)
                    continue
                if market_key not in MARKET_KEYS:
                    continue
                for outcome in outcomes:
                    outcome_dict = _expect_dict(outcome, "event_outcome")
                    player = _outcome_player(outcome_dict)
                    point = safe_float(outcome_dict.get("point"))
                    if not player or point is None:
                        continue
                    self.add(
                        MarketQuote(
                            player=player,
                            market=market_key,
                            point=point,
                            price=safe_float(outcome_dict.get("price")),
                            book=book_key,
                            event_id=event_id,
                            start_time=start_time,
                        )
                    )

        self._events[event_id] = EventInfo(
            event_id=event_id,
            home_team=str(event.get("home_team", "") or ""),
            away_team=str(event.get("away_team", "") or ""),
            start_time=start_time,
            spread=_mean(spreads),
            total=_mean(totals),
        )

    @classmethod
    def from_events(cls, payload: Any, *, now: datetime) -> MarketLineIndex:
        """Index a list of event odds objects (or a single event object)."""
        events = [payload] if isinstance(payload, dict) else _expect_list(payload, "odds_payload")
        index = cls()
        for event in events:
            index._add_event(_expect_dict(event, "odds_event"), now)
        if index.skipped_started:
            logger.warning("odds events already started, skipped: %d", index.skipped_started)
        logger.info(
            "market index built: events=%d player_markets=%d", len(index._events), len(index)
        )
        return index
