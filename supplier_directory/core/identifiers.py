"""Tax-registration identifier (CNPJ) formatting helpers.

Identifiers are stored in the canonical `NN.NNN.NNN/NNNN-NN` form. Input may
be either the 14 bare digits (any punctuation is ignored) or an already
formatted value.
"""

import re

IDENTIFIER_DIGITS = 14
FORMATTED_PATTERN = re.compile(r"^\d{2}\.\d{3}\.\d{3}/\d{4}-\d{2}$")

_NON_DIGIT = re.compile(r"\D")
_GROUPS = re.compile(r"^(\d{2})(\d{3})(\d{3})(\d{4})(\d{2})$")


def digits_only(value: str) -> str:
    return _NON_DIGIT.sub("", value)


def is_valid_identifier(value: str) -> bool:
    """True when *value* has exactly 14 digits or is already formatted."""
    return len(digits_only(value)) == IDENTIFIER_DIGITS or bool(FORMATTED_PATTERN.match(value))


def format_identifier(value: str) -> str:
    """Return the canonical form of *value*.

    Values that are neither 14 digits nor already formatted are returned
    unchanged; callers validate first.
    """
    if FORMATTED_PATTERN.match(value):
        return value
    digits = digits_only(value)
    match = _GROUPS.match(digits)
    if not match:
        return value
    return "{}.{}.{}/{}-{}".format(*match.groups())
