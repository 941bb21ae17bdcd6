"""
order-sync: reconcile retail orders with their card charges and sync them
to a purchases API.
Scans listing pages, classifies and extracts each invoice, upserts the
reconciled record and reports one outcome per order.
"""

from .charge_extractor import ChargeExtractor
from .errors import ExtractionError, FormatError, NetworkError, OrderSyncError, ParseError
from .invoice_extractor import InvoiceExtractor
from .layout_detector import LayoutDetector
from .listing_scanner import ListingScanner
from .models import Charge, InvoiceDetails, Layout, Order, OrderFailure, OrderStub, PageResult, SyncOutcome
from .order_assembler import assemble
from .reconciler import Reconciler
from .reporter import orders_frame, render_html, summarize
from .rule_loader import RuleLoader
from .sync_client import SyncClient

__all__ = [
    'Charge',
    'ChargeExtractor',
    'ExtractionError',
    'FormatError',
    'InvoiceDetails',
    'InvoiceExtractor',
    'Layout',
    'LayoutDetector',
    'ListingScanner',
    'NetworkError',
    'Order',
    'OrderFailure',
    'OrderStub',
    'OrderSyncError',
    'PageResult',
    'ParseError',
    'Reconciler',
    'RuleLoader',
    'SyncClient',
    'SyncOutcome',
    'assemble',
    'orders_frame',
    'render_html',
    'summarize',
]
