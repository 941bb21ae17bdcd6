#!/usr/bin/env python3
"""
Layout detection and invoice extraction for standard, Subscribe & Save and
digital invoices
"""

import pytest

from order_sync.errors import ExtractionError, ParseError
from order_sync.invoice_extractor import InvoiceExtractor
from order_sync.layout_detector import LayoutDetector
from order_sync.models import Layout
from order_sync.rule_loader import RuleLoader

from html_fixtures import (
    DIGITAL_INVOICE,
    STANDARD_INVOICE,
    STANDARD_INVOICE_NO_TOTAL,
    SUBSCRIBE_AND_SAVE_INVOICE,
    SUBSCRIBE_AND_SAVE_NO_HEADING,
    soup,
)


@pytest.fixture(scope='module')
def rule_loader():
    return RuleLoader()


@pytest.fixture
def detector(rule_loader):
    return LayoutDetector(rule_loader)


@pytest.fixture
def extractor(rule_loader):
    return InvoiceExtractor(rule_loader)


class TestLayoutDetector:
    """Detection order: digital id prefix, then Subscribe & Save label, then standard"""

    def test_standard(self, detector):
        assert detector.detect('111-1234567-1234567', soup(STANDARD_INVOICE)) is Layout.STANDARD

    def test_subscribe_and_save(self, detector):
        assert detector.detect('111-1234567-1234567', soup(SUBSCRIBE_AND_SAVE_INVOICE)) is Layout.SUBSCRIBE_AND_SAVE

    def test_digital(self, detector):
        assert detector.detect('D01-1234567-1234567', soup(DIGITAL_INVOICE)) is Layout.DIGITAL

    def test_digital_id_wins_over_subscribe_and_save_label(self, detector):
        """A digital id never reaches the HTML checks"""
        assert detector.detect('D01-1234567-1234567', soup(SUBSCRIBE_AND_SAVE_INVOICE)) is Layout.DIGITAL

    def test_label_must_start_the_bold_text(self, detector):
        html = '<html><body><b>Not a Subscribe and Save order</b></body></html>'
        assert detector.detect('111-1', soup(html)) is Layout.STANDARD


class TestStandardInvoice:

    def test_items_in_document_order_with_duplicates(self, extractor):
        details = extractor.extract(soup(STANDARD_INVOICE), Layout.STANDARD)
        assert details.items == ['USB-C Cable, 6ft', 'Desk Lamp', 'USB-C Cable, 6ft']

    def test_item_count_matches_item_title_nodes(self, extractor):
        document = soup(STANDARD_INVOICE)
        details = extractor.extract(document, Layout.STANDARD)
        assert len(details.items) == len(document.select('[data-component="itemTitle"]'))

    def test_price_is_last_line_item_row(self, extractor):
        details = extractor.extract(soup(STANDARD_INVOICE), Layout.STANDARD)
        assert details.price == pytest.approx(42.09)

    def test_missing_order_total_raises(self, extractor):
        with pytest.raises(ExtractionError):
            extractor.extract(soup(STANDARD_INVOICE_NO_TOTAL), Layout.STANDARD)

    def test_no_items_raises(self, extractor):
        html = STANDARD_INVOICE.replace('data-component="itemTitle"', 'data-component="itemImage"')
        with pytest.raises(ExtractionError):
            extractor.extract(soup(html), Layout.STANDARD)

    def test_non_numeric_price_raises_parse_error(self, extractor):
        html = STANDARD_INVOICE.replace('$42.09', 'pending')
        with pytest.raises(ParseError):
            extractor.extract(soup(html), Layout.STANDARD)


class TestSubscribeAndSaveInvoice:

    def test_price_uses_first_exact_order_total_label(self, extractor):
        """Other bold price-like text (Grand Total, Order Total (before discount)) is ignored"""
        details = extractor.extract(soup(SUBSCRIBE_AND_SAVE_INVOICE), Layout.SUBSCRIBE_AND_SAVE)
        assert details.price == pytest.approx(45.10)

    def test_price_unchanged_without_decoys(self, extractor):
        html = (SUBSCRIBE_AND_SAVE_INVOICE
                .replace('<tr><td><b>Grand Total: $99.99</b></td></tr>', '')
                .replace('<tr><td><b>Order Total (before discount): $50.00</b></td></tr>', ''))
        details = extractor.extract(soup(html), Layout.SUBSCRIBE_AND_SAVE)
        assert details.price == pytest.approx(45.10)

    def test_items_flattened_across_item_headings(self, extractor):
        details = extractor.extract(soup(SUBSCRIBE_AND_SAVE_INVOICE), Layout.SUBSCRIBE_AND_SAVE)
        assert details.items == ['Coffee Beans, 2lb', 'Paper Towels', 'Coffee Beans, 2lb']

    def test_missing_items_heading_raises(self, extractor):
        with pytest.raises(ExtractionError):
            extractor.extract(soup(SUBSCRIBE_AND_SAVE_NO_HEADING), Layout.SUBSCRIBE_AND_SAVE)

    def test_missing_order_total_raises(self, extractor):
        html = SUBSCRIBE_AND_SAVE_INVOICE.replace('Order Total: $', 'Total: $')
        with pytest.raises(ExtractionError):
            extractor.extract(soup(html), Layout.SUBSCRIBE_AND_SAVE)


class TestDigitalInvoice:

    def test_single_item_and_price(self, extractor):
        details = extractor.extract(soup(DIGITAL_INVOICE), Layout.DIGITAL)
        assert details.items == ['The Pragmatic Programmer [Kindle Edition]']
        assert details.price == pytest.approx(24.99)

    def test_only_first_description_cell_is_used(self, extractor):
        html = DIGITAL_INVOICE.replace('</table>', '<tr><td valign="top">Second cell</td></tr></table>')
        details = extractor.extract(soup(html), Layout.DIGITAL)
        assert len(details.items) == 1

    def test_missing_price_raises(self, extractor):
        html = DIGITAL_INVOICE.replace('a-color-price', 'a-color-secondary')
        with pytest.raises(ExtractionError):
            extractor.extract(soup(html), Layout.DIGITAL)
