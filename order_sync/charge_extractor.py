#!/usr/bin/env python3
"""
Charge Extractor - read the card charge associated with an order.

Two sources exist:
- invoices carry a "Credit Card transactions" row whose second cell reads
  "<card> : <date> : $<amount>"
- the payments page lists one row per charge, grouped under date headers
"""

import logging
from itertools import islice
from typing import Any, Dict, Optional

from bs4 import Tag

from .errors import ExtractionError, FormatError
from .models import Charge
from .parsing import DEFAULT_DATE_FORMATS, normalize_text, parse_amount, parse_charge_date

logger = logging.getLogger(__name__)


class ChargeExtractor:
    """Extract Charge records from invoice rows and payments page rows"""

    def __init__(self, rule_loader):
        """
        Initialize charge extractor

        Args:
            rule_loader: RuleLoader instance
        """
        self.rule_loader = rule_loader
        self.charge_rules: Dict[str, Any] = rule_loader.get_charge_rules()
        self.marker_prefix = self.charge_rules.get('marker_prefix', 'Credit Card transactions')
        self.separator = self.charge_rules.get('segment_separator', ':')
        self.date_container_class = self.charge_rules.get('date_container_class', 'apx-transaction-date-container')
        self.max_date_scan = int(self.charge_rules.get('max_date_scan', 200))
        self.date_formats = tuple(self.charge_rules.get('date_formats') or DEFAULT_DATE_FORMATS)

    def extract_charge(self, container: Tag) -> Optional[Charge]:
        """
        Extract the charge from an element holding a credit-card transaction row

        Args:
            container: Invoice document, table or row to search

        Returns:
            Charge, or None if no credit-card marker is present (not yet billed)

        Raises:
            FormatError: if the charge text is not exactly card, date and amount
            ParseError: if the amount or date cannot be parsed
        """
        marker = next(
            (b for b in container.find_all('b') if normalize_text(b).startswith(self.marker_prefix)),
            None,
        )
        if marker is None:
            return None

        row = marker.find_parent('tr')
        cell = row.select_one(':scope > td:nth-of-type(2)') if row is not None else None
        if cell is None:
            raise ExtractionError(f"'{self.marker_prefix}' marker has no charge cell")

        text = normalize_text(cell)
        segments = [segment.strip() for segment in text.split(self.separator)]
        if len(segments) != 3:
            raise FormatError(f"Expected card, date and amount, got {len(segments)} segment(s): {text!r}")

        card, charged_on, amount_text = segments
        self._check_date(charged_on)
        return Charge(card=card, date=charged_on, amount=parse_amount(amount_text))

    def _check_date(self, charged_on: str):
        """Raise ParseError unless the date matches one of the configured formats"""
        parse_charge_date(charged_on, self.date_formats)

    def find_transaction_date(self, row: Tag) -> Optional[str]:
        """
        Walk back from a payments row to the nearest date header

        The scan stops at the start of the list or after max_date_scan
        siblings, whichever comes first.

        Args:
            row: Transaction row element

        Returns:
            Date header text, or None if no header precedes the row
        """
        anchor = row.parent
        if anchor is None:
            return None

        preceding = (s for s in anchor.previous_siblings if isinstance(s, Tag))
        for sibling in islice(preceding, self.max_date_scan):
            if self.date_container_class in (sibling.get('class') or []):
                return normalize_text(sibling)
        return None

    def extract_transaction_charge(self, row: Tag, rules: Dict[str, Any]) -> Charge:
        """
        Build the charge for a payments page row

        Args:
            row: Transaction row element
            rules: Listing rules for the transactions page

        Returns:
            Charge; date is None when no date header precedes the row

        Raises:
            ExtractionError: if the card or amount cell is missing
            ParseError: if the amount or date cannot be parsed
        """
        card_node = row.select_one(rules.get('card_selector', '.a-text-bold'))
        amount_node = row.select_one(rules.get('amount_selector', '.a-span-last'))
        if card_node is None or amount_node is None:
            raise ExtractionError("Transaction row is missing its card or amount cell")

        charged_on = self.find_transaction_date(row)
        if charged_on is None:
            logger.debug("No date header before transaction row, recording undated charge")
        else:
            self._check_date(charged_on)
        return Charge(
            card=normalize_text(card_node),
            date=charged_on,
            amount=parse_amount(normalize_text(amount_node)),
        )
