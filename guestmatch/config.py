"""Tunable thresholds for the guest matching engine."""

from dataclasses import asdict, dataclass, field

from guestmatch.phone import PhoneNormalizer

SIMILARITY_THRESHOLD = 80.0
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
EXACT_MATCH_BONUS = 5.0
PARTIAL_WORD_THRESHOLD = 60.0
PHONE_CONFLICT_PENALTY = 20.0


@dataclass(frozen=True)
class FuzzyConfig:
    """Matching configuration, passed to ``GuestMatcher`` at construction.

    Use ``dataclasses.replace(DEFAULT_CONFIG, similarity_threshold=85)`` to
    derive a variant.
    """

    similarity_threshold: float = SIMILARITY_THRESHOLD   # 0 – 100
    min_name_length: int = MIN_NAME_LENGTH
    max_name_length: int = MAX_NAME_LENGTH
    exact_match_bonus: float = EXACT_MATCH_BONUS
    partial_word_threshold: float = PARTIAL_WORD_THRESHOLD
    conflict_penalty: float = PHONE_CONFLICT_PENALTY
    phone_normalizer: PhoneNormalizer = field(default_factory=PhoneNormalizer)

    def to_dict(self) -> dict:
        """Return the config as plain JSON-compatible values."""
        data = asdict(self)
        data['phone_normalizer'] = [
            f'{rule.prefix}:{rule.total_digits}' for rule in self.phone_normalizer.rules
        ]
        return data


DEFAULT_CONFIG = FuzzyConfig()
