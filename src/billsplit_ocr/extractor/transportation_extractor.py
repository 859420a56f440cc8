"""
Transportation Extractor
========================
Bus tickets carry one dominant number (the fare) among distances, seat
numbers and reference codes, with little vocabulary around it.

  organization  operator abbreviation → canonical name, else "<NAME> DEPOT",
                else the first line with transport vocabulary
  route         six per-line patterns in order (see _ROUTE_PATTERNS);
                an endpoint, once found, is never overwritten
  distance      first "<n> km" on the ticket
  fare          explicit context scoring, then the 1 / 2 / 3+ candidate rules

Output is a single transportation LineItem with subtotal == total == fare.
"""

import re
from decimal import Decimal
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from loguru import logger

from billsplit_ocr.extractor.base_extractor import BaseExtractor, PriceIndex
from billsplit_ocr.models import (ClassifiedLine, ItemKind, LineItem, MerchantInfo,
                                  Receipt, ReceiptType)
from billsplit_ocr.scoring import ScoredCandidate, ScoreSheet, select_best

FARE_MIN = Decimal("10")
FARE_MAX = Decimal("2000")

Route = Tuple[Optional[str], Optional[str]]

# ─── Route patterns ───────────────────────────────────────────────────────────

# Up to four words, ending before a digit/punctuation, end of line or the next
# route keyword
_PLACE = r"([A-Za-z]+(?: [A-Za-z]+){0,3}?)"
_PLACE_END = r"(?=\s*(?:$|[^A-Za-z\s])|\s+(?:to|destination|dest|drop|dropping|via)\b)"

# "route:" / "route 12:" lead-in is skipped; otherwise the pair may start mid-line
_ROUTE_LEAD = r"(?:\broute\b[^A-Za-z]*)?\b"

_FROM_TO = re.compile(r"\bfrom\s*:?\s+" + _PLACE + r"\s+to\s*:?\s+" + _PLACE + _PLACE_END, re.IGNORECASE)
_X_TO_Y = re.compile(_ROUTE_LEAD + _PLACE + r"\s+to\s+" + _PLACE + _PLACE_END, re.IGNORECASE)
_DASH = re.compile(_ROUTE_LEAD + _PLACE + r"\s*[-–—>]+\s*" + _PLACE + _PLACE_END, re.IGNORECASE)
_ORIGIN = re.compile(r"\b(?:origin|source)\b\s*:?\s*" + _PLACE + _PLACE_END, re.IGNORECASE)
_DESTINATION = re.compile(r"\b(?:destination|dest)\b\.?\s*:?\s*" + _PLACE + _PLACE_END, re.IGNORECASE)
_BOARDING = re.compile(r"\b(?:boarding|pickup)(?:\s*point)?\b\s*:?\s*" + _PLACE + _PLACE_END, re.IGNORECASE)
_DROPPING = re.compile(r"\b(?:dropping|drop)(?:\s*point)?\b\s*:?\s*" + _PLACE + _PLACE_END, re.IGNORECASE)

_DEPOT = re.compile(r"([A-Za-z][A-Za-z ]*?)\s*\bdepot\b", re.IGNORECASE)
_DISTANCE = re.compile(r"(\d+)\s*kms?\b", re.IGNORECASE)
_NOT_A_PLACE = re.compile(
    r"\b(?:total|amount|fare|price|tax|gst|time|date|seat|berth|ticket|passenger|distance|km|kms)\b",
    re.IGNORECASE)

# ─── Explicit fare keywords ───────────────────────────────────────────────────

_FARE_KEYWORDS: Tuple[Tuple[Pattern, int, str], ...] = (
    (re.compile(r"\b(?:fare|amount)\b", re.IGNORECASE), 20, "fare/amount"),
    (re.compile(r"\b(?:total|net)\b", re.IGNORECASE), 15, "total/net"),
    (re.compile(r"\b(?:price|cost)\b", re.IGNORECASE), 12, "price/cost"),
    (re.compile(r"\b(?:passenger|ticket)\b", re.IGNORECASE), 10, "passenger/ticket"),
    (re.compile(r"\b(?:journey|travel)\b", re.IGNORECASE), 8, "journey/travel"),
    (re.compile(r"\b(?:distance|kms?)\b", re.IGNORECASE), -5, "distance context"),
    (re.compile(r"\b(?:time|date)\b", re.IGNORECASE), -8, "time/date context"),
    (re.compile(r"\b(?:seat|berth)\b", re.IGNORECASE), -3, "seat context"),
)


class TransportationExtractor(BaseExtractor):

    def _extract(self, lines: Sequence[ClassifiedLine], price_index: PriceIndex,
                 receipt_type: ReceiptType) -> Receipt:
        texts = [cl.text for cl in lines]

        origin, destination = self.route(texts)
        distance = self.distance(texts)
        possible = self.possible_fares(lines, price_index)
        fare = self.resolve_fare(lines, price_index, possible)

        items: Tuple[LineItem, ...] = ()
        total = Decimal("0")
        if fare is not None:
            if origin and destination:
                name = f"{origin} to {destination}"
                if distance is not None:
                    name += f" ({distance} km)"
            else:
                name = "Bus Ticket"
            items = (LineItem(name=name, price=fare, quantity=1, kind=ItemKind.TRANSPORTATION),)
            total = fare

        logger.info(
            f"[TransportationExtractor] route={origin!r}->{destination!r} "
            f"distance={distance} possible_fares={[str(f) for f in possible]} fare={fare}"
        )

        return Receipt(
            merchant_info=MerchantInfo(
                name=self.organization(texts),
                phone=self._phone(texts),
            ),
            items=items,
            subtotal=total,
            total=total,
            receipt_type=receipt_type,
        )

    # ── Organization ──────────────────────────────────────────────────────────

    def organization(self, texts: Sequence[str]) -> Optional[str]:
        for abbr, canonical in self.p.transport_operators:
            abbr_rx = re.compile(rf"\b{re.escape(abbr)}\b", re.IGNORECASE)
            if any(abbr_rx.search(t) for t in texts):
                return canonical

        for text in texts:
            m = _DEPOT.search(text)
            if m:
                return f"{m.group(1).strip()} DEPOT"

        for text in texts:
            if self.p.transport_keywords.search(text):
                return text.strip()
        return None

    def _phone(self, texts: Sequence[str]) -> Optional[str]:
        for text in texts:
            m = self.p.phone.search(text)
            if m:
                return re.sub(r"\s", "", m.group(0))
        return None

    # ── Route & distance ──────────────────────────────────────────────────────

    def route(self, texts: Sequence[str]) -> Route:
        origin = destination = None
        for text in texts:
            line_from, line_to = self.route_in_line(text)
            if origin is None and line_from:
                origin = line_from
            if destination is None and line_to:
                destination = line_to
            if origin and destination:
                break
        return origin, destination

    def route_in_line(self, text: str) -> Route:
        """
        Try the route patterns in order. The paired patterns (from/to, dash,
        two cities) end the search on a hit; the single-endpoint keyword
        patterns may combine on one line.
        """
        for paired in (self._from_to, self._dash, self._two_cities):
            origin, destination = paired(text)
            if origin and destination:
                return origin, destination

        origin = self._single(_ORIGIN, text) or self._single(_BOARDING, text)
        destination = self._single(_DESTINATION, text) or self._single(_DROPPING, text)
        return origin, destination

    def _from_to(self, text: str) -> Route:
        m = _FROM_TO.search(text) or _X_TO_Y.search(text)
        return self._pair(m)

    def _dash(self, text: str) -> Route:
        return self._pair(_DASH.search(text))

    def _two_cities(self, text: str) -> Route:
        cities: List[str] = []
        for m in self.p.cities.finditer(text):
            city = m.group(0).upper()
            if city not in cities:
                cities.append(city)
        if len(cities) >= 2:
            return cities[0], cities[1]
        return None, None

    def _pair(self, m) -> Route:
        if not m:
            return None, None
        origin, destination = self._place(m.group(1)), self._place(m.group(2))
        if origin and destination:
            return origin, destination
        return None, None

    def _single(self, pattern, text: str) -> Optional[str]:
        m = pattern.search(text)
        return self._place(m.group(1)) if m else None

    @staticmethod
    def _place(raw: Optional[str]) -> Optional[str]:
        if not raw:
            return None
        place = raw.strip()
        if len(place) < 3 or _NOT_A_PLACE.search(place):
            return None
        return place.upper()

    @staticmethod
    def distance(texts: Sequence[str]) -> Optional[int]:
        for text in texts:
            m = _DISTANCE.search(text)
            if m:
                return int(m.group(1))
        return None

    # ── Fare ──────────────────────────────────────────────────────────────────

    @staticmethod
    def possible_fares(lines: Sequence[ClassifiedLine], price_index: PriceIndex) -> List[Decimal]:
        """Distinct candidate values in the fare range, largest first."""
        values = set()
        for cl in lines:
            for sp in price_index.get(cl.line_index, ()):
                if FARE_MIN <= sp.value <= FARE_MAX:
                    values.add(sp.value)
        return sorted(values, reverse=True)

    def resolve_fare(self, lines: Sequence[ClassifiedLine], price_index: PriceIndex,
                     possible: Sequence[Decimal]) -> Optional[Decimal]:
        if not possible:
            return None

        explicit = self.find_explicit_fare(lines, price_index, possible)
        if explicit is not None:
            return explicit

        if len(possible) == 1:
            return possible[0]
        if len(possible) == 2:
            # Documented heuristic: the larger of two is taken as the fare
            return max(possible)

        best = select_best(self.score_fares_by_context(possible))
        return best.candidate if best else None

    def find_explicit_fare(self, lines: Sequence[ClassifiedLine], price_index: PriceIndex,
                           possible: Sequence[Decimal]) -> Optional[Decimal]:
        scores: Dict[Decimal, ScoreSheet] = {fare: ScoreSheet() for fare in possible}

        for cl in lines:
            positional = self._positional(price_index.get(cl.line_index, ()))
            if not positional:
                continue
            last = positional[-1]
            for sp in positional:
                sheet = scores.get(sp.value)
                if sheet is None:
                    continue
                for pattern, points, reason in _FARE_KEYWORDS:
                    if pattern.search(cl.text):
                        sheet.add(points, reason)
                if not sp.is_whole:
                    sheet.add(5, "decimal format")
                if sp is last:
                    sheet.add(3, "last price on line")

        candidates = [scores[fare].result(fare) for fare in possible]
        for cand in candidates:
            logger.debug(f"[TransportationExtractor] explicit {cand.candidate}: {cand.score} {list(cand.reasons)}")
        best = select_best(candidates, min_score=0)
        return best.candidate if best else None

    @staticmethod
    def score_fares_by_context(possible: Sequence[Decimal]) -> List[ScoredCandidate[Decimal]]:
        highest = max(possible)
        scored = []
        for fare in possible:
            sheet = ScoreSheet()
            whole = fare == fare.to_integral_value()
            if 100 <= fare <= 300:
                sheet.add(10, "typical bus fare")
            if 50 <= fare <= 500:
                sheet.add(5, "reasonable intercity fare")
            if not whole:
                sheet.add(8, "decimal format")
            if whole and fare > 100 and fare % 100 == 0:
                sheet.add(-3, "very round number")
            if whole and 100 <= fare <= 150:
                sheet.add(-2, "possible distance")
            if fare == highest:
                sheet.add(7, "highest candidate")
            if fare < 50:
                sheet.add(-10, "too low")
            if fare > 1000:
                sheet.add(-15, "too high")
            scored.append(sheet.result(fare))
        return scored
