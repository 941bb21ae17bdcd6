#!/usr/bin/env python3
"""
Run wiring: sync per page before pagination, summary in listing order
"""

import asyncio
from unittest.mock import Mock

import pytest

from order_sync.charge_extractor import ChargeExtractor
from order_sync.errors import ExtractionError
from order_sync.invoice_extractor import InvoiceExtractor
from order_sync.layout_detector import LayoutDetector
from order_sync.listing_scanner import ListingScanner
from order_sync.main import build_parser, merge_page_outcomes, sync_pages
from order_sync.models import Order, OrderFailure, PageResult, SyncOutcome
from order_sync.reconciler import Reconciler
from order_sync.rule_loader import RuleLoader
from order_sync.sync_client import SyncClient

from html_fixtures import (
    DIGITAL_INVOICE,
    STANDARD_INVOICE,
    STANDARD_INVOICE_NO_TOTAL,
    FakeBrowser,
    digital_url,
    standard_url,
    transaction_row,
    transactions_page,
)


def make_reconciler(browser):
    rule_loader = RuleLoader()
    charges = ChargeExtractor(rule_loader)
    return Reconciler(
        browser,
        ListingScanner(rule_loader, 'transactions', charges),
        LayoutDetector(rule_loader),
        InvoiceExtractor(rule_loader),
        charges=charges,
    )


def test_merge_page_outcomes_keeps_failures_in_place():
    failure = OrderFailure(order_id='111-2', href=None, error=ExtractionError('no total'))
    page = PageResult(page_number=1, results=[
        Order(id='111-1', href='a', items=['x'], price=1.0),
        failure,
        Order(id='111-3', href='c', items=['y'], price=2.0),
    ])

    merged = merge_page_outcomes(page, [SyncOutcome.CREATED, SyncOutcome.UPDATED])
    assert merged == [SyncOutcome.CREATED, failure, SyncOutcome.UPDATED]


def test_each_page_synced_before_next_page_is_requested():
    page_one = transactions_page([('January 5, 2024', transaction_row('111-1', '$42.09')
                                   + transaction_row('111-2', '$1.00'))])
    page_two = transactions_page([('January 4, 2024', transaction_row('D01-3', '$24.99'))])
    browser = FakeBrowser([page_one, page_two], {
        standard_url('111-1'): STANDARD_INVOICE,
        standard_url('111-2'): STANDARD_INVOICE_NO_TOTAL,
        digital_url('D01-3'): DIGITAL_INVOICE,
    })

    def sync_all(orders):
        browser.events.append(f'sync {[o.id for o in orders]}')
        return [SyncOutcome.CREATED] * len(orders)

    client = Mock(spec=SyncClient)
    client.sync_all.side_effect = sync_all

    report = asyncio.run(sync_pages(make_reconciler(browser), client, paginate=True, max_pages=5))

    assert browser.events == [
        "sync ['111-1']",
        'click with 0 open',
        "sync ['D01-3']",
        'click with 0 open',
    ]
    assert [o.id for o in report.orders] == ['111-1', 'D01-3']
    assert report.summary == '👶 💥 👶'


def test_empty_listing_gives_empty_summary():
    browser = FakeBrowser(['<html><body></body></html>'], {})
    client = Mock(spec=SyncClient)
    client.sync_all.return_value = []

    report = asyncio.run(sync_pages(make_reconciler(browser), client))

    assert report.orders == []
    assert report.summary == ''


def test_log_level_is_case_insensitive():
    assert build_parser().parse_args(['--log-level', 'debug']).log_level == 'DEBUG'


def test_unknown_log_level_rejected_by_parser():
    with pytest.raises(SystemExit):
        build_parser().parse_args(['--log-level', 'verbose'])
