#!/usr/bin/env python3
"""
order-sync entry point

Opens the listing page in a logged-in browser profile, reconciles every order
on it (and optionally the following pages), pushes each reconciled order to
the purchases API and prints one glyph per order:

    👷 updated   👶 created   🙅 conflict   🧟 server error
    🤷 unknown   🔌 store unreachable   💥 could not be reconciled

Usage:
  python -m order_sync.main
  python -m order_sync.main --listing order_history --paginate --html-report out/orders.html
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from . import config
from .browser import BrowserSession
from .charge_extractor import ChargeExtractor
from .invoice_extractor import InvoiceExtractor
from .layout_detector import LayoutDetector
from .listing_scanner import LISTING_TYPES, ListingScanner
from .logger import setup_logger
from .models import Order, OrderFailure, PageResult, SyncOutcome
from .reconciler import Reconciler
from .reporter import summarize, write_html_report
from .rule_loader import RuleLoader
from .sync_client import SYNC_METHODS, SyncClient

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


@dataclass
class RunReport:
    """Everything a run produced, in processing order"""
    orders: List[Order] = field(default_factory=list)
    outcomes: List[SyncOutcome] = field(default_factory=list)
    processed: List[Union[SyncOutcome, OrderFailure]] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return summarize(self.processed)


def merge_page_outcomes(page: PageResult, outcomes: Sequence[SyncOutcome]) -> List[Union[SyncOutcome, OrderFailure]]:
    """
    Line sync outcomes back up with the page's rows

    Args:
        page: Reconciled listing page
        outcomes: Outcomes for page.orders, same order

    Returns:
        One entry per listing row: its SyncOutcome, or its OrderFailure
    """
    remaining = iter(outcomes)
    return [next(remaining) if isinstance(r, Order) else r for r in page.results]


async def sync_pages(reconciler: Reconciler, client: SyncClient, paginate: bool = False, max_pages: int = 1) -> RunReport:
    """Reconcile listing pages and sync each page before moving to the next"""
    report = RunReport()
    async for page in reconciler.run(paginate=paginate, max_pages=max_pages):
        orders = page.orders
        outcomes = await asyncio.to_thread(client.sync_all, orders)
        report.orders.extend(orders)
        report.outcomes.extend(outcomes)
        report.processed.extend(merge_page_outcomes(page, outcomes))
    return report


async def run(
    listing: str = config.DEFAULT_LISTING,
    start_url: Optional[str] = None,
    paginate: bool = False,
    max_pages: int = config.MAX_PAGES,
    api_url: str = config.API_BASE_URL,
    method: str = config.SYNC_METHOD,
    html_report: Optional[Path] = None,
    headless: bool = config.HEADLESS,
) -> RunReport:
    """
    Run one export

    Args:
        listing: Listing page type ('transactions' or 'order_history')
        start_url: Listing URL to start from (defaults to the listing's URL rule)
        paginate: Follow next-page controls
        max_pages: Upper bound on pages when paginating
        api_url: Purchases API base URL
        method: 'PUT' or 'POST'
        html_report: Write the HTML order table here
        headless: Run the browser without a window

    Returns:
        RunReport
    """
    rule_loader = RuleLoader(config.RULES_DIR)
    charges = ChargeExtractor(rule_loader)
    scanner = ListingScanner(rule_loader, listing, charges)
    client = SyncClient(
        api_url,
        method=method,
        timeout=config.SYNC_TIMEOUT_SECONDS,
        max_workers=config.SYNC_MAX_WORKERS,
    )

    async with BrowserSession(config.BROWSER_PROFILE_DIR, headless=headless) as browser:
        await browser.goto(start_url or scanner.rules['url'])
        reconciler = Reconciler(
            browser,
            scanner,
            LayoutDetector(rule_loader),
            InvoiceExtractor(rule_loader),
            charges=charges,
            invoice_timeout=config.INVOICE_TIMEOUT_SECONDS,
            max_open_invoices=config.MAX_OPEN_INVOICES,
        )
        report = await sync_pages(reconciler, client, paginate=paginate, max_pages=max_pages)

    failures = [r for r in report.processed if isinstance(r, OrderFailure)]
    for failure in failures:
        logger.warning(f"Not synced: order {failure.order_id or '?'} ({failure.reason})")
    logger.info(f"Processed {len(report.processed)} orders: {report.summary}")

    if html_report:
        write_html_report(html_report, report.orders, report.outcomes, config.REPORT_STYLESHEET_URL)
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Reconcile retail orders with their charges and sync them to the purchases API',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--listing', choices=LISTING_TYPES, default=config.DEFAULT_LISTING,
                        help='Listing page to read orders from')
    parser.add_argument('--url', help='Listing page URL (defaults to the configured one)')
    parser.add_argument('--paginate', action='store_true', help='Follow next-page links')
    parser.add_argument('--max-pages', type=int, default=config.MAX_PAGES, help='Maximum pages when paginating')
    parser.add_argument('--method', choices=SYNC_METHODS, default=config.SYNC_METHOD,
                        help='PUT upserts by id, POST creates')
    parser.add_argument('--api-url', default=config.API_BASE_URL, help='Purchases API base URL')
    parser.add_argument('--html-report', type=Path, help='Write an HTML order table to this path')
    parser.add_argument('--headless', action='store_true', default=config.HEADLESS, help='Run the browser headless')
    parser.add_argument('--log-level', default='INFO', type=str.upper, choices=LOG_LEVELS,
                        help='Logging level')
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    setup_logger(log_level=args.log_level, log_dir=config.LOG_DIR)

    report = asyncio.run(run(
        listing=args.listing,
        start_url=args.url,
        paginate=args.paginate,
        max_pages=args.max_pages,
        api_url=args.api_url,
        method=args.method,
        html_report=args.html_report,
        headless=args.headless,
    ))
    print(report.summary)


if __name__ == '__main__':
    main()
