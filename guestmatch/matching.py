"""Guest lookup: phone first, then fuzzy and partial name matching."""

import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from guestmatch import GuestRecord, MatchMethod, MatchResult, MatchType
from guestmatch.config import DEFAULT_CONFIG, FuzzyConfig
from guestmatch.normalize import normalize_text
from guestmatch.scoring import edit_similarity, token_similarity

log = logging.getLogger(__name__)


@dataclass
class SearchStats:
    """Diagnostics of one name search."""

    total_guests: int
    search_time_ms: float
    candidates_evaluated: int
    best_similarity: float
    match_found: bool


class GuestMatcher:
    """Find the pre-registered guest behind a submitted name.

    The matcher holds only its configuration, so a single instance can be
    shared between threads. No method raises on malformed input: an
    invalid name or an empty guest list gives ``None`` (or ``[]``), the
    same as "no sufficient match".
    """

    def __init__(self, config: Optional[FuzzyConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def _normalize_search(
        self, search_name, guests: Sequence[GuestRecord],
    ) -> Optional[str]:
        """Return the normalized search name, or None if the input is unusable."""
        if not search_name or not isinstance(search_name, str):
            log.debug("Invalid search name: %r", search_name)
            return None
        if not guests:
            log.debug("Empty guest list")
            return None
        normalized = normalize_text(search_name)
        if len(normalized) < self.config.min_name_length:
            log.debug("Search name too short: %r", search_name)
            return None
        return normalized

    def _score(self, normalized_search: str, guest: GuestRecord) -> MatchResult:
        """Score one candidate by edit distance and by word overlap."""
        normalized_guest = normalize_text(guest.name)
        fuzzy = edit_similarity(
            normalized_search, normalized_guest, self.config.exact_match_bonus,
        )
        partial = token_similarity(
            normalized_search, normalized_guest, self.config.partial_word_threshold,
        )
        is_exact = normalized_search == normalized_guest

        if is_exact:
            match_type = MatchType.EXACT
        elif partial > fuzzy:
            match_type = MatchType.PARTIAL
        else:
            match_type = MatchType.FUZZY

        return MatchResult(
            guest=guest,
            similarity=max(fuzzy, partial),
            is_exact_match=is_exact,
            match_type=match_type,
            normalized_search_name=normalized_search,
            normalized_guest_name=normalized_guest,
        )

    def find_best_match_by_name(
        self,
        search_name: str,
        guests: Sequence[GuestRecord],
    ) -> Optional[MatchResult]:
        """Find the best guest for a name, ignoring phone numbers.

        An exact match (after normalization) is returned as soon as it is
        seen. Otherwise every guest is scored and the highest score wins;
        on equal scores the guest listed first is kept.

        Args:
            search_name: Name as typed by the guest.
            guests: Candidate guests. Guests without a string name are skipped.

        Returns:
            The best MatchResult if it reaches the similarity threshold,
            None otherwise.
        """
        normalized_search = self._normalize_search(search_name, guests)
        if normalized_search is None:
            return None

        start = time.perf_counter()
        evaluated = 0
        best: Optional[MatchResult] = None

        for guest in guests:
            if not guest.name or not isinstance(guest.name, str):
                continue
            evaluated += 1

            result = self._score(normalized_search, guest)
            if result.is_exact_match:
                log.debug("Exact match for %r: %r", search_name, guest.name)
                return result

            # Strictly greater: the first guest wins ties
            if result.similarity > (best.similarity if best else 0.0):
                best = result

        best_similarity = best.similarity if best else 0.0
        threshold = self.config.similarity_threshold
        stats = SearchStats(
            total_guests=len(guests),
            search_time_ms=round((time.perf_counter() - start) * 1000, 3),
            candidates_evaluated=evaluated,
            best_similarity=best_similarity,
            match_found=best is not None and best_similarity >= threshold,
        )
        log.debug("Search stats for %r: %s", search_name, stats)

        if stats.match_found:
            return best
        return None

    def find_best_match(
        self,
        search_name: str,
        guests: Sequence[GuestRecord],
        search_phone: Optional[str] = None,
    ) -> Optional[MatchResult]:
        """Find the best guest for a name and an optional phone number.

        Uses a multi-stage approach when a phone is given:
        1. Phone match (normalized digits equal) wins outright.
        2. Name match via ``find_best_match_by_name``.
        3. A name match whose guest has a different phone on file is
           penalized by ``conflict_penalty`` and flagged as a conflict;
           the penalized result is still returned and may now be below
           the threshold, which the caller has to check.

        Args:
            search_name: Name as typed by the guest.
            guests: Candidate guests.
            search_phone: Phone as typed by the guest, if any.

        Returns:
            MatchResult or None.
        """
        normalized_search = self._normalize_search(search_name, guests)
        if normalized_search is None:
            return None

        if not search_phone:
            return self.find_best_match_by_name(search_name, guests)

        normalize_phone = self.config.phone_normalizer
        phone = normalize_phone(search_phone)

        if phone:
            for guest in guests:
                if normalize_phone(guest.phone) != phone:
                    continue
                log.debug("Phone match for %r: %r", search_phone, guest.name)
                normalized_guest = normalize_text(guest.name)
                return MatchResult(
                    guest=guest,
                    similarity=100.0,
                    is_exact_match=True,
                    match_type=MatchType.EXACT,
                    normalized_search_name=normalized_search,
                    normalized_guest_name=normalized_guest,
                    match_method=MatchMethod.PHONE,
                    phone_match=True,
                    name_similarity=edit_similarity(
                        normalized_search, normalized_guest, self.config.exact_match_bonus,
                    ),
                )

        name_match = self.find_best_match_by_name(search_name, guests)
        if name_match is None:
            return None

        guest_phone = normalize_phone(name_match.guest.phone)
        if phone and guest_phone and guest_phone != phone:
            log.debug(
                "Phone conflict for %r: %r on file, %r submitted",
                name_match.guest.name, name_match.guest.phone, search_phone,
            )
            return dataclasses.replace(
                name_match,
                similarity=max(0.0, name_match.similarity - self.config.conflict_penalty),
                match_method=MatchMethod.NAME_WITH_PHONE_CONFLICT,
                phone_match=False,
                has_conflict=True,
            )

        return dataclasses.replace(
            name_match, match_method=MatchMethod.NAME, phone_match=False,
        )

    def find_multiple_matches(
        self,
        search_name: str,
        guests: Sequence[GuestRecord],
        max_results: int = 3,
    ) -> list[MatchResult]:
        """List every guest that reaches the similarity threshold.

        Used to detect ambiguous names: two guests scoring 85 against
        "Juan Pérez" mean the best match alone is not trustworthy.

        Args:
            search_name: Name as typed by the guest.
            guests: Candidate guests.
            max_results: Maximum number of results.

        Returns:
            Matches sorted by similarity, highest first; guests with equal
            scores keep their list order.
        """
        normalized_search = self._normalize_search(search_name, guests)
        if normalized_search is None or max_results <= 0:
            return []

        matches = [
            result
            for result in (
                self._score(normalized_search, guest)
                for guest in guests
                if guest.name and isinstance(guest.name, str)
            )
            if result.similarity >= self.config.similarity_threshold
        ]
        matches.sort(key=lambda r: r.similarity, reverse=True)

        log.debug("%d guests above threshold for %r", len(matches), search_name)
        return matches[:max_results]


_default_matcher = GuestMatcher()


def _matcher(config: Optional[FuzzyConfig]) -> GuestMatcher:
    return GuestMatcher(config) if config is not None else _default_matcher


def find_best_match(
    search_name: str,
    guests: Sequence[GuestRecord],
    search_phone: Optional[str] = None,
    config: Optional[FuzzyConfig] = None,
) -> Optional[MatchResult]:
    """Module-level shortcut for ``GuestMatcher(config).find_best_match``."""
    return _matcher(config).find_best_match(search_name, guests, search_phone)


def find_best_match_by_name(
    search_name: str,
    guests: Sequence[GuestRecord],
    config: Optional[FuzzyConfig] = None,
) -> Optional[MatchResult]:
    return _matcher(config).find_best_match_by_name(search_name, guests)


def find_multiple_matches(
    search_name: str,
    guests: Sequence[GuestRecord],
    max_results: int = 3,
    config: Optional[FuzzyConfig] = None,
) -> list[MatchResult]:
    return _matcher(config).find_multiple_matches(search_name, guests, max_results)
