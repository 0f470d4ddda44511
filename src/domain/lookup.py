"""Inbound lookup normalization.

A caller sends ``{"cui": ...}`` as a string or a number, often with the
``RO`` prefix or separators copied from an invoice. ANAF wants the bare
digits plus the date for which the registry state is requested.
"""

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime

from src.core.constants import (
    CUI_INVALID_DETAILS,
    CUI_INVALID_ERROR,
    CUI_REQUIRED_DETAILS,
    CUI_REQUIRED_ERROR,
)
from src.core.exceptions import ValidationError

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True, slots=True)
class LookupRequest:
    """One normalized lookup.

    Attributes:
        cui: Digits-only fiscal identifier.
        date: ISO calendar date (``YYYY-MM-DD``) the registry is queried for.
    """

    cui: str
    date: str


def normalize_cui(raw: object) -> str:
    """Strip every non-digit character from the raw CUI.

    Args:
        raw: The ``cui`` value as sent by the caller.

    Returns:
        str: The digit-only subsequence, possibly empty.

    Examples:
        >>> normalize_cui("RO 1439-9840")
        '14399840'
        >>> normalize_cui(14399840)
        '14399840'
    """
    return _NON_DIGITS.sub("", str(raw))


def today_iso(now: datetime | None = None) -> str:
    """Return the current UTC date as ``YYYY-MM-DD``."""
    current: date = (now or datetime.now(UTC)).date()
    return current.isoformat()


def build_lookup_request(raw_cui: object, now: datetime | None = None) -> LookupRequest:
    """Validate and normalize the caller's CUI.

    Args:
        raw_cui: The ``cui`` value from the request body.
        now: Clock override for tests.

    Returns:
        LookupRequest: The normalized request for today's date.

    Raises:
        ValidationError: If the CUI is missing, falsy, or has no digits.
    """
    if not raw_cui:
        raise ValidationError(CUI_REQUIRED_ERROR, CUI_REQUIRED_DETAILS)

    cui = normalize_cui(raw_cui)
    if not cui:
        raise ValidationError(
            CUI_INVALID_ERROR,
            CUI_INVALID_DETAILS,
            context={"raw_cui": str(raw_cui)[:32]},
        )

    return LookupRequest(cui=cui, date=today_iso(now))
