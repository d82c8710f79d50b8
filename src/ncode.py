# src/ncode.py
"""Novel code (ncode) parsing and formatting.

An ncode such as ``n4830bu`` is a compact integer written as a four digit
decimal part followed by a base-26 letter part:

    num = letters * 9999 + digits

The letter part uses ``a``=0 ... ``z``=25, most significant letter first.
Parsing is lenient (case-insensitive, surplus leading ``a``s, missing
letters), formatting always produces the canonical form.

Usage:
    code = Ncode.parse("N4830Bu")
    str(code)  # "n4830bu"
"""

import string
from dataclasses import dataclass
from typing import Self

# Largest value an ncode can hold (unsigned 32-bit)
NCODE_MAX = 2**32 - 1

# Size of the decimal part's range
_LO_RADIX = 9999
_HI_RADIX = 26

_DIGITS = frozenset(string.digits)
_LETTERS = frozenset(string.ascii_letters)


class NcodeParseError(ValueError):
    """Raised when a string is not a valid ncode."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid ncode: {value!r}")
        self.value = value


def _encode_letters(hi: int) -> str:
    """Render the letter part, always at least one letter."""
    letters = []
    while True:
        hi, digit = divmod(hi, _HI_RADIX)
        letters.append(chr(ord("a") + digit))
        if hi == 0:
            break
    return "".join(reversed(letters))


@dataclass(frozen=True, slots=True)
class Ncode:
    """A novel identifier. Immutable."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= NCODE_MAX:
            raise ValueError(f"ncode value out of range: {self.value}")

    def __str__(self) -> str:
        if self.value == 0:
            return "n0000a"
        hi, lo = divmod(self.value - 1, _LO_RADIX)
        return f"n{lo + 1:04d}{_encode_letters(hi)}"

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parse an ncode string.

        Raises:
            NcodeParseError: on a bad prefix, a decimal part that is not
                exactly four ASCII digits, a non-letter in the letter part,
                or a value that does not fit in 32 bits.
        """
        if not text or text[0] not in ("n", "N"):
            raise NcodeParseError(text)

        lo_part = text[1:5]
        if len(lo_part) != 4 or not all(ch in _DIGITS for ch in lo_part):
            raise NcodeParseError(text)
        lo = int(lo_part)

        hi = 0
        for ch in text[5:]:
            if ch not in _LETTERS:
                raise NcodeParseError(text)
            hi = hi * _HI_RADIX + (ord(ch.lower()) - ord("a"))
            if hi > NCODE_MAX:
                raise NcodeParseError(text)

        num = hi * _LO_RADIX + lo
        if num > NCODE_MAX:
            raise NcodeParseError(text)
        return cls(num)
