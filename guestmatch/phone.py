"""Phone number normalization for guest comparison."""

import re
from dataclasses import dataclass, field
from typing import Optional

_NON_DIGIT_RE = re.compile(r'[^0-9]')


@dataclass(frozen=True)
class CountryCodeRule:
    """Strip a country calling code from numbers of a known total length.

    Only numbers of exactly ``total_digits`` digits change: ``52`` with 12 turns
    ``525512345678`` into the 10-digit national number ``5512345678`` but
    leaves a 10-digit number that happens to start with ``52`` untouched.
    """

    prefix: str
    total_digits: int

    def apply(self, digits: str) -> Optional[str]:
        """Return the national number, or None if the rule does not apply."""
        if len(digits) == self.total_digits and digits.startswith(self.prefix):
            return digits[len(self.prefix):]
        return None

    @classmethod
    def parse(cls, text: str) -> 'CountryCodeRule':
        """Parse a ``PREFIX:DIGITS`` string such as ``52:12``.

        Raises:
            ValueError: If the string is not of that form.
        """
        prefix, sep, total = text.partition(':')
        if not sep or not prefix.isdigit() or not total.isdigit():
            raise ValueError(f"Invalid country code rule {text!r}, expected PREFIX:DIGITS")
        return cls(prefix=prefix, total_digits=int(total))


MEXICO = CountryCodeRule(prefix='52', total_digits=12)


@dataclass(frozen=True)
class PhoneNormalizer:
    """Reduce a phone number to comparable digits.

    Non-digits are removed, then the first matching country code rule
    strips its prefix. Without rules only the digit filtering happens.
    """

    rules: tuple[CountryCodeRule, ...] = field(default=(MEXICO,))

    def __call__(self, phone: Optional[str]) -> str:
        if not phone or not isinstance(phone, str):
            return ''
        digits = _NON_DIGIT_RE.sub('', phone)
        for rule in self.rules:
            national = rule.apply(digits)
            if national is not None:
                return national
        return digits


normalize_phone = PhoneNormalizer()
