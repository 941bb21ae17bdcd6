#!/usr/bin/env python3
"""
Order records passed between the listing scanner, invoice extractor,
reconciler, sync client and reporter.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlparse

from .errors import OrderSyncError
from .parsing import DEFAULT_DATE_FORMATS, parse_charge_date


class Layout(Enum):
    """Invoice layout variants, each with its own extraction strategy"""
    STANDARD = 'standard'
    SUBSCRIBE_AND_SAVE = 'subscribe_and_save'
    DIGITAL = 'digital'


class SyncOutcome(Enum):
    CREATED = 'created'
    UPDATED = 'updated'
    CONFLICT = 'conflict'
    SERVER_ERROR = 'serverError'
    UNKNOWN = 'unknown'
    UNREACHABLE = 'unreachable'


@dataclass(frozen=True)
class Charge:
    """A billing event tied to an order row. date is None when undated."""
    card: str
    date: Optional[str]
    amount: float

    def posted_on(self, formats=DEFAULT_DATE_FORMATS) -> Optional[date]:
        """Charge date as a date object, None for an undated charge"""
        if self.date is None:
            return None
        return parse_charge_date(self.date, formats)

    def to_dict(self) -> Dict[str, Any]:
        return {'card': self.card, 'date': self.date, 'amount': self.amount}


@dataclass(frozen=True)
class OrderStub:
    id: str
    href: str
    charge: Optional[Charge] = None

    def with_charge(self, charge: Optional[Charge]) -> 'OrderStub':
        return replace(self, charge=charge)


@dataclass
class InvoiceDetails:
    items: List[str]
    price: float


@dataclass
class Order:
    """
    A reconciled order. price comes from the invoice; charge.amount is kept
    as billed even when it differs.
    """
    id: str
    href: str
    items: List[str] = field(default_factory=list)
    price: float = 0.0
    charge: Optional[Charge] = None

    @property
    def has_charge(self) -> bool:
        return self.charge is not None

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the remote store, id recovered from the link if missing"""
        return {
            'id': self.id or order_id_from_href(self.href),
            'href': self.href,
            'items': list(self.items),
            'price': self.price,
            'charge': self.charge.to_dict() if self.charge else None,
        }


@dataclass
class OrderFailure:
    """An order that could not be reconciled; siblings are unaffected"""
    order_id: Optional[str]
    href: Optional[str]
    error: OrderSyncError

    @property
    def reason(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


@dataclass
class PageResult:
    """Everything collected from one listing page, in listing order"""
    page_number: int
    results: List[Union[Order, OrderFailure]] = field(default_factory=list)

    @property
    def orders(self) -> List[Order]:
        return [r for r in self.results if isinstance(r, Order)]

    @property
    def failures(self) -> List[OrderFailure]:
        return [r for r in self.results if isinstance(r, OrderFailure)]


def order_id_from_href(href: Optional[str]) -> Optional[str]:
    """Read the orderID query parameter of an invoice link"""
    if not href:
        return None
    values = parse_qs(urlparse(href).query).get('orderID')
    return values[0] if values else None
