#!/usr/bin/env python3
"""
Exceptions raised while reconciling and syncing orders.
Every per-order error derives from OrderSyncError so the driver can isolate it.
"""


class OrderSyncError(Exception):
    """Base class for errors scoped to a single order"""


class ExtractionError(OrderSyncError):
    """A required anchor element is missing from an invoice or listing row"""


class ParseError(OrderSyncError):
    """Monetary or date text does not have the expected shape"""


class FormatError(OrderSyncError):
    """Charge text does not split into card, date and amount"""


class NetworkError(OrderSyncError):
    """The remote store produced no response at all"""
