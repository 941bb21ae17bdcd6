#!/usr/bin/env python3
"""
Order Assembler - merge a listing stub with its invoice details
"""

from .models import InvoiceDetails, Order, OrderStub


def assemble(stub: OrderStub, details: InvoiceDetails) -> Order:
    """
    Combine a stub and its invoice into one Order

    Items and price come from the invoice; id, href and charge pass through
    from the stub unchanged. The invoice price is never replaced by the
    charge amount.
    """
    return Order(
        id=stub.id,
        href=stub.href,
        items=list(details.items),
        price=details.price,
        charge=stub.charge,
    )
