"""Canonical form of guest names used for comparison."""

import re
import unicodedata

_NON_ALNUM_RE = re.compile(r'[^a-z0-9\s]')
# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')


def normalize_text(text) -> str:
    """Normalize a name for equality and edit-distance comparison.

    Lowercases, removes accents via NFD decomposition, replaces anything
    that is not an ASCII letter, digit or whitespace with a space, then
    collapses whitespace. The order matters: accents must be split off
    before the character filter, otherwise "é" would become a space.

    Args:
        text: Raw name. Anything that is not a string yields ''.

    Returns:
        Normalized string, e.g. ``'  MARÍA-José '`` -> ``'maria jose'``.
    """
    if not text or not isinstance(text, str):
        return ''
    decomposed = unicodedata.normalize('NFD', text.lower())
    stripped = ''.join(ch for ch in decomposed if unicodedata.category(ch) != 'Mn')
    cleaned = _NON_ALNUM_RE.sub(' ', stripped)
    return _WHITESPACE_RE.sub(' ', cleaned).strip()
