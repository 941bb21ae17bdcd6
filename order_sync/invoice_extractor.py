#!/usr/bin/env python3
"""
Invoice Extractor - pull line items and order price out of a printable invoice.

Each Layout has exactly one extraction function; extract() is the single
dispatch point. Selectors come from rules/20_invoice_layouts.yaml.

A missing anchor (price node, order-total label, items heading) raises
ExtractionError: it means the page changed shape, and the order has to be
reported as a failure rather than dropped.
"""

import logging
from typing import Any, Callable, Dict, List

from bs4 import BeautifulSoup

from .errors import ExtractionError
from .models import InvoiceDetails, Layout
from .parsing import normalize_text, parse_amount

logger = logging.getLogger(__name__)


class InvoiceExtractor:
    """Extract InvoiceDetails from an invoice document of a known layout"""

    def __init__(self, rule_loader):
        self.rule_loader = rule_loader
        self._strategies: Dict[Layout, Callable[[BeautifulSoup, Dict[str, Any]], InvoiceDetails]] = {
            Layout.STANDARD: self._extract_standard,
            Layout.SUBSCRIBE_AND_SAVE: self._extract_subscribe_and_save,
            Layout.DIGITAL: self._extract_digital,
        }

    def extract(self, document: BeautifulSoup, layout: Layout) -> InvoiceDetails:
        """
        Extract items and price using the strategy for the given layout

        Args:
            document: Parsed invoice document
            layout: Layout returned by LayoutDetector

        Returns:
            InvoiceDetails with a non-empty item list

        Raises:
            ExtractionError: if a required anchor is missing
            ParseError: if the price text is not a currency amount
        """
        rules = self.rule_loader.get_invoice_layout_rules(layout)
        details = self._strategies[layout](document, rules)
        if not details.items:
            raise ExtractionError(f"No items found on {layout.value} invoice")
        logger.debug(f"Extracted {len(details.items)} items, price ${details.price:.2f} ({layout.value})")
        return details

    def _extract_standard(self, document: BeautifulSoup, rules: Dict[str, Any]) -> InvoiceDetails:
        price_selector = rules.get('price_selector', '.od-line-item-row:last-child .a-span-last')
        price_node = document.select_one(price_selector)
        if price_node is None:
            raise ExtractionError(f"Order total not found ({price_selector})")

        item_selector = rules.get('item_selector', '[data-component="itemTitle"]')
        items = [normalize_text(el) for el in document.select(item_selector)]
        return InvoiceDetails(items=items, price=parse_amount(normalize_text(price_node)))

    def _extract_subscribe_and_save(self, document: BeautifulSoup, rules: Dict[str, Any]) -> InvoiceDetails:
        headings = document.select(rules.get('emphasized_selector', 'td b'))
        total_prefix = rules.get('order_total_prefix', 'Order Total: ')
        items_heading = rules.get('items_heading', 'Items Ordered')
        item_selector = rules.get('item_selector', 'td i')

        # first matching label wins; other bold price-like text is ignored
        totals = [text for text in map(normalize_text, headings) if text.startswith(total_prefix + '$')]
        if not totals:
            raise ExtractionError(f"'{total_prefix.strip()}' label not found")
        price = parse_amount(totals[0][len(total_prefix):])

        item_headings = [h for h in headings if normalize_text(h) == items_heading]
        if not item_headings:
            raise ExtractionError(f"'{items_heading}' heading not found")

        items: List[str] = []
        for heading in item_headings:
            body = heading.find_parent('tbody')
            if body is None:
                raise ExtractionError(f"'{items_heading}' heading is not inside a table body")
            items.extend(normalize_text(el) for el in body.select(item_selector))
        return InvoiceDetails(items=items, price=price)

    def _extract_digital(self, document: BeautifulSoup, rules: Dict[str, Any]) -> InvoiceDetails:
        price_selector = rules.get('price_selector', '.a-color-price')
        price_node = document.select_one(price_selector)
        if price_node is None:
            raise ExtractionError(f"Digital order price not found ({price_selector})")

        item_selector = rules.get('item_selector', 'td[valign="top"]')
        description = document.select_one(item_selector)
        if description is None:
            raise ExtractionError(f"Digital order description not found ({item_selector})")

        # digital receipts list exactly one product
        return InvoiceDetails(items=[normalize_text(description)], price=parse_amount(normalize_text(price_node)))
