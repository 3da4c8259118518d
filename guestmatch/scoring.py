"""Similarity scores (0–100) between guest names."""

from rapidfuzz.distance import Levenshtein

from guestmatch.config import EXACT_MATCH_BONUS, PARTIAL_WORD_THRESHOLD
from guestmatch.normalize import normalize_text

MAX_SCORE = 100.0


def _clamp(score: float) -> float:
    return max(0.0, min(MAX_SCORE, score))


def edit_similarity(
    normalized_a: str,
    normalized_b: str,
    exact_match_bonus: float = EXACT_MATCH_BONUS,
) -> float:
    """Edit-distance similarity of two already normalized strings.

    Equal strings score 100 (the exact-match bonus is clamped away), an
    empty string against a non-empty one scores 0. Otherwise the
    Levenshtein distance (insert, delete, substitute, each cost 1) is
    converted to ``(max_len - distance) / max_len * 100``.

    Args:
        normalized_a: First string, output of ``normalize_text``.
        normalized_b: Second string, output of ``normalize_text``.
        exact_match_bonus: Bonus for equal strings, capped at 100.

    Returns:
        Similarity between 0.0 and 100.0, rounded to two decimals.
    """
    if normalized_a == normalized_b:
        return _clamp(MAX_SCORE + exact_match_bonus)
    if not normalized_a or not normalized_b:
        return 0.0

    distance = Levenshtein.distance(normalized_a, normalized_b)
    max_len = max(len(normalized_a), len(normalized_b))
    score = (max_len - distance) / max_len * MAX_SCORE
    return _clamp(round(score, 2))


def similarity(a, b, exact_match_bonus: float = EXACT_MATCH_BONUS) -> float:
    """Edit-distance similarity of two raw names.

    Both names are normalized first, so case and accents never count as
    differences: ``similarity('María José', 'MARIA JOSE') == 100``.
    """
    return edit_similarity(normalize_text(a), normalize_text(b), exact_match_bonus)


def _words(normalized: str) -> list[str]:
    # Single letters (initials) carry no signal on their own
    return [w for w in normalized.split(' ') if len(w) > 1]


def token_similarity(
    normalized_search: str,
    normalized_full: str,
    word_threshold: float = PARTIAL_WORD_THRESHOLD,
) -> float:
    """Token-overlap similarity of two already normalized strings.

    Each search word is scored against its closest word in the full name
    and counts only if that score reaches ``word_threshold``. The average
    of the counted scores is scaled by the fraction of search words that
    were counted, so matching one of three words yields a third of the
    average.

    Args:
        normalized_search: Searched name, output of ``normalize_text``.
        normalized_full: Candidate full name, output of ``normalize_text``.
        word_threshold: Minimum word similarity for a word to count.

    Returns:
        Similarity between 0.0 and 100.0, unrounded so that it compares
        exactly against thresholds.
    """
    search_words = _words(normalized_search)
    full_words = _words(normalized_full)
    if not search_words or not full_words:
        return 0.0

    matched_scores: list[float] = []
    for search_word in search_words:
        best = max(edit_similarity(search_word, full_word) for full_word in full_words)
        if best >= word_threshold:
            matched_scores.append(best)

    if not matched_scores:
        return 0.0

    average = sum(matched_scores) / len(matched_scores)
    completeness = len(matched_scores) / len(search_words)
    return _clamp(average * completeness)


def partial_match(search, full, word_threshold: float = PARTIAL_WORD_THRESHOLD) -> float:
    """Token-overlap similarity of two raw names.

    Lets a single given name find a longer full name:
    ``partial_match('María', 'María José González') == 100`` although the
    whole-string edit similarity is only about 26.
    """
    return token_similarity(normalize_text(search), normalize_text(full), word_threshold)
