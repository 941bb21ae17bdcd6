#!/usr/bin/env python3
"""
Configuration for order-sync
Edit these values according to your setup
"""

from pathlib import Path

# Remote store (purchases API)
# PUT {API_BASE_URL}/{id} upserts, POST {API_BASE_URL} creates
API_BASE_URL = 'http://localhost:8080/api/purchases'
SYNC_METHOD = 'PUT'
SYNC_TIMEOUT_SECONDS = 10
SYNC_MAX_WORKERS = 8

# Listing pages
# 'transactions' (Payments > Transactions) or 'order_history' (Your Orders)
DEFAULT_LISTING = 'transactions'
RULES_DIR = Path(__file__).parent / 'rules'

# Browser
# A persistent profile keeps the retail site session between runs;
# log in once in the opened window, later runs reuse it.
BROWSER_PROFILE_DIR = Path('.auth/browser')
HEADLESS = False

# Invoice expansion
# Each invoice must load and be extracted within this budget, otherwise the
# order is reported as an extraction failure.
INVOICE_TIMEOUT_SECONDS = 60
MAX_OPEN_INVOICES = 10
MAX_PAGES = 50

# Output
LOG_DIR = Path('logs')
REPORT_STYLESHEET_URL = 'https://cdn.jsdelivr.net/npm/bulma@0.9.4/css/bulma.min.css'
