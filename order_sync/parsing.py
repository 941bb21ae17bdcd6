#!/usr/bin/env python3
"""
Currency and date parsing shared by the invoice and charge extractors.
"""

import re
import logging
from datetime import date, datetime
from typing import Optional, Sequence

from .errors import ParseError

logger = logging.getLogger(__name__)

AMOUNT_RE = re.compile(r'^[-+]?\s*\$?\s*(\d[\d,]*(?:\.\d+)?|\.\d+)$')

# "January 2, 2006" is what the payments page prints; invoices abbreviate months
DEFAULT_DATE_FORMATS = ('%B %d, %Y', '%b %d, %Y')


def parse_amount(text: Optional[str]) -> float:
    """
    Parse a $-prefixed currency string into a float

    Args:
        text: Text such as "$19.99", "19.99", "$1,204.00" or "-$19.99"

    Returns:
        Parsed non-negative amount

    Raises:
        ParseError: if the text is not a currency value
    """
    cleaned = (text or '').strip()
    match = AMOUNT_RE.match(cleaned)
    if not match:
        raise ParseError(f"Not a currency amount: {text!r}")
    # sign is dropped, the payments page prints charges as negative amounts
    return float(match.group(1).replace(',', ''))


def parse_charge_date(text: str, formats: Sequence[str] = DEFAULT_DATE_FORMATS) -> date:
    """
    Parse the date segment of a charge

    Args:
        text: Date text such as "January 5, 2024" or "Jan 5, 2024"
        formats: strptime formats tried in order

    Returns:
        Parsed date

    Raises:
        ParseError: if no format matches
    """
    cleaned = ' '.join((text or '').split())
    for fmt in formats:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    raise ParseError(f"Unrecognized charge date: {text!r}")


def normalize_text(element) -> str:
    """Visible text of a bs4 element with runs of whitespace collapsed"""
    if element is None:
        return ''
    return ' '.join(element.get_text(' ').split())
