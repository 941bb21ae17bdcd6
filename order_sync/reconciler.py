#!/usr/bin/env python3
"""
Reconciler - drive one or more listing pages through the extraction pipeline

Per listing page:
  1. scan     - listing rows become OrderStubs (ListingScanner)
  2. expand   - every invoice is opened concurrently, classified, extracted
                and assembled into an Order; the tab is always closed
  3. collect  - all expansions settle before anything else happens
  4. paginate - optional; only after the caller is done with the page

A failure in one expansion is recorded as an OrderFailure for that order and
never cancels its siblings.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional, Union

from .charge_extractor import ChargeExtractor
from .errors import ExtractionError, OrderSyncError
from .invoice_extractor import InvoiceExtractor
from .layout_detector import LayoutDetector
from .listing_scanner import ListingScanner
from .models import Order, OrderFailure, OrderStub, PageResult
from .order_assembler import assemble

logger = logging.getLogger(__name__)


class Reconciler:
    """Turn listing pages into reconciled Orders"""

    def __init__(
        self,
        browser,
        scanner: ListingScanner,
        detector: LayoutDetector,
        extractor: InvoiceExtractor,
        charges: Optional[ChargeExtractor] = None,
        invoice_timeout: float = 60,
        max_open_invoices: int = 10,
    ):
        """
        Args:
            browser: BrowserSession (or any object with the same methods)
            scanner: ListingScanner for the listing page type
            detector: LayoutDetector
            extractor: InvoiceExtractor
            charges: ChargeExtractor for invoices that carry their own charge
            invoice_timeout: Seconds allowed to load and extract one invoice
            max_open_invoices: Upper bound on invoice tabs open at once
        """
        self.browser = browser
        self.scanner = scanner
        self.detector = detector
        self.extractor = extractor
        self.charges = charges or scanner.charges
        self.invoice_timeout = invoice_timeout
        self.max_open_invoices = max_open_invoices

    async def reconcile_page(self, page_number: int = 1) -> PageResult:
        """
        Scan the current listing page and expand every order on it

        Returns:
            PageResult with one entry per listing row, in listing order
        """
        document = await self.browser.current_document()
        scanned = self.scanner.scan(document, self.browser.current_url)

        # created here so it belongs to the running event loop
        slots = asyncio.Semaphore(self.max_open_invoices)
        stubs = [s for s in scanned if isinstance(s, OrderStub)]
        expanded = iter(await asyncio.gather(*(self._expand_isolated(stub, slots) for stub in stubs)))

        results: List[Union[Order, OrderFailure]] = [
            next(expanded) if isinstance(s, OrderStub) else s for s in scanned
        ]
        page = PageResult(page_number=page_number, results=results)
        logger.info(f"Page {page_number}: {len(page.orders)} orders reconciled, {len(page.failures)} failed")
        return page

    async def run(self, paginate: bool = False, max_pages: int = 1) -> AsyncIterator[PageResult]:
        """
        Reconcile the current listing page and, optionally, the ones after it

        The next page is requested only when the consumer asks for the next
        result, so a page is fully collected (and synced by the caller)
        before navigation starts.

        Args:
            paginate: Follow the next-page control
            max_pages: Stop after this many pages

        Yields:
            PageResult per listing page
        """
        page_number = 1
        while True:
            yield await self.reconcile_page(page_number)

            if not paginate or page_number >= max_pages:
                break
            selector = self.scanner.next_page_selector
            if not selector or not await self.browser.click(selector):
                logger.info(f"No further listing pages after page {page_number}")
                break
            page_number += 1

    async def _expand_isolated(self, stub: OrderStub, slots: asyncio.Semaphore) -> Union[Order, OrderFailure]:
        async with slots:
            try:
                return await asyncio.wait_for(self.expand(stub), timeout=self.invoice_timeout)
            except asyncio.TimeoutError:
                error = ExtractionError(f"Invoice did not load within {self.invoice_timeout}s")
            except OrderSyncError as e:
                error = e
        logger.warning(f"Order {stub.id}: {type(error).__name__}: {error}")
        return OrderFailure(order_id=stub.id, href=stub.href, error=error)

    async def expand(self, stub: OrderStub) -> Order:
        """
        Open a stub's invoice and assemble its Order

        Raises:
            ExtractionError, ParseError, FormatError: for this order only
        """
        async with self.browser.opened(stub.href) as document:
            layout = self.detector.detect(stub.id, document)
            details = self.extractor.extract(document, layout)
            if stub.charge is None and self.scanner.charge_from_invoice:
                stub = stub.with_charge(self.charges.extract_charge(document))
        return assemble(stub, details)
