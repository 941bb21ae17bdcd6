#!/usr/bin/env python3
"""
Listing Scanner - turn a listing page into order stubs
Supports the payments (transactions) page and the order history page,
configured in rules/30_listing_pages.yaml
"""

import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .charge_extractor import ChargeExtractor
from .errors import ExtractionError, OrderSyncError
from .models import OrderFailure, OrderStub, order_id_from_href
from .parsing import normalize_text

logger = logging.getLogger(__name__)

LISTING_TYPES = ('transactions', 'order_history')

ScanResult = Union[OrderStub, OrderFailure]


class ListingScanner:
    """Enumerate the orders on one listing page"""

    def __init__(self, rule_loader, listing: str = 'transactions', charge_extractor: Optional[ChargeExtractor] = None):
        """
        Initialize listing scanner

        Args:
            rule_loader: RuleLoader instance
            listing: Listing page type ('transactions' or 'order_history')
            charge_extractor: ChargeExtractor (built from rule_loader if omitted)
        """
        if listing not in LISTING_TYPES:
            raise ValueError(f"Unknown listing page type: {listing}")
        self.listing = listing
        self.rules: Dict[str, Any] = rule_loader.get_listing_rules(listing)
        self.digital_prefix = rule_loader.get_layout_detection_rules().get('digital_id_prefix', 'D')
        self.charges = charge_extractor or ChargeExtractor(rule_loader)

    @property
    def next_page_selector(self) -> Optional[str]:
        return self.rules.get('next_page_selector')

    @property
    def charge_from_invoice(self) -> bool:
        """Order history links carry no charge; it is read from the invoice instead"""
        return bool(self.rules.get('charge_from_invoice', False))

    def scan(self, document: BeautifulSoup, base_url: Optional[str] = None) -> List[ScanResult]:
        """
        Scan a listing document

        Args:
            document: Parsed listing page
            base_url: URL the page was loaded from, for resolving relative links

        Returns:
            Stubs and per-row failures in page order, one entry per order id
        """
        base_url = base_url or self.rules.get('base_url', '')
        if self.listing == 'transactions':
            results = self._scan_transactions(document, base_url)
        else:
            results = self._scan_invoice_links(document, base_url)
        results = self._drop_repeated_orders(results)

        stub_count = sum(1 for r in results if isinstance(r, OrderStub))
        logger.info(f"Found {stub_count} orders on {self.listing} page ({len(results) - stub_count} unreadable rows)")
        return results

    def _scan_transactions(self, document: BeautifulSoup, base_url: str) -> List[ScanResult]:
        results: List[ScanResult] = []
        for row in document.select(self.rules.get('row_selector', '.apx-transactions-line-item-component-container')):
            # separator rows have no child elements
            if row.find(True) is None:
                continue
            results.append(self._transaction_stub(row, base_url))
        return results

    def _transaction_stub(self, row: Tag, base_url: str) -> ScanResult:
        link = row.select_one(self.rules.get('link_selector', 'a'))
        if link is None or not link.get('href'):
            error = ExtractionError(f"Transaction row has no order link: {normalize_text(row)[:80]!r}")
            logger.warning(str(error))
            return OrderFailure(order_id=None, href=None, error=error)

        order_id = normalize_text(link).replace(self.rules.get('order_id_prefix', 'Order #'), '').strip()
        href = self._invoice_href(order_id, urljoin(base_url, link['href']))
        try:
            charge = self.charges.extract_transaction_charge(row, self.rules)
        except OrderSyncError as e:
            logger.warning(f"Order {order_id}: unreadable charge row: {e}")
            return OrderFailure(order_id=order_id, href=href, error=e)
        return OrderStub(id=order_id, href=href, charge=charge)

    def _invoice_href(self, order_id: str, order_href: str) -> str:
        """Printable invoice URL for an order detail link"""
        if order_id.startswith(self.digital_prefix):
            return order_href + self.rules.get('digital_print_suffix', '&print=1')
        return order_href.replace(self.rules.get('edit_page', 'edit.html'), self.rules.get('print_page', 'print.html'))

    def _scan_invoice_links(self, document: BeautifulSoup, base_url: str) -> List[ScanResult]:
        results: List[ScanResult] = []
        for link in document.select(self.rules.get('invoice_link_selector', 'a[href^="/gp/css/summary/print.html"]')):
            href = urljoin(base_url, link['href'])
            order_id = order_id_from_href(href)
            if not order_id:
                error = ExtractionError(f"Invoice link has no orderID: {href}")
                logger.warning(str(error))
                results.append(OrderFailure(order_id=None, href=href, error=error))
                continue
            results.append(OrderStub(id=order_id, href=href))
        return results

    @staticmethod
    def _drop_repeated_orders(results: List[ScanResult]) -> List[ScanResult]:
        """Keep the first row per order id so no order is synced twice concurrently"""
        seen = set()
        unique: List[ScanResult] = []
        for result in results:
            order_id = result.id if isinstance(result, OrderStub) else result.order_id
            if order_id is not None:
                if order_id in seen:
                    logger.info(f"Order {order_id} listed more than once, keeping first row")
                    continue
                seen.add(order_id)
            unique.append(result)
        return unique
