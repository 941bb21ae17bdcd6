#!/usr/bin/env python3
"""
Result Reporter - summarize a run

- summarize(): one glyph per processed order, in processing order
- orders_frame(): tabular view of reconciled orders sorted by price
- render_html() / write_html_report(): standalone HTML page of that table,
  rows without a charge highlighted
"""

import html
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Optional, Sequence, Union

import pandas as pd

from .models import Order, OrderFailure, SyncOutcome

logger = logging.getLogger(__name__)

OUTCOME_GLYPHS = MappingProxyType({
    SyncOutcome.UPDATED: '👷',
    SyncOutcome.CREATED: '👶',
    SyncOutcome.SERVER_ERROR: '🧟',
    SyncOutcome.CONFLICT: '🙅',
    SyncOutcome.UNKNOWN: '🤷',
    SyncOutcome.UNREACHABLE: '🔌',
})
FAILURE_GLYPH = '💥'

DEFAULT_STYLESHEET = 'https://cdn.jsdelivr.net/npm/bulma@0.9.4/css/bulma.min.css'

FRAME_COLUMNS = ['order_id', 'href', 'items', 'price', 'card', 'charge_date', 'charge_amount', 'has_charge', 'outcome']


def glyph_for(result: Union[SyncOutcome, OrderFailure]) -> str:
    if isinstance(result, OrderFailure):
        return FAILURE_GLYPH
    return OUTCOME_GLYPHS[result]


def summarize(results: Sequence[Union[SyncOutcome, OrderFailure]]) -> str:
    """
    Join one glyph per processed order, in input order

    Args:
        results: Sync outcomes, or OrderFailure for orders that never reached the store

    Returns:
        Space separated glyphs; empty string for an empty run
    """
    return ' '.join(glyph_for(result) for result in results)


def orders_frame(orders: Sequence[Order], outcomes: Optional[Sequence[SyncOutcome]] = None) -> pd.DataFrame:
    """
    Build a table of reconciled orders sorted ascending by price

    Args:
        orders: Reconciled orders
        outcomes: Sync outcomes aligned with orders (optional)

    Returns:
        DataFrame with FRAME_COLUMNS, one row per order
    """
    if outcomes is not None and len(outcomes) != len(orders):
        raise ValueError(f"Got {len(outcomes)} outcomes for {len(orders)} orders")

    rows = []
    for index, order in enumerate(orders):
        charge = order.charge
        rows.append({
            'order_id': order.id,
            'href': order.href,
            'items': list(order.items),
            'price': order.price,
            'card': charge.card if charge else None,
            'charge_date': charge.date if charge else None,
            'charge_amount': charge.amount if charge else None,
            'has_charge': order.has_charge,
            'outcome': outcomes[index] if outcomes is not None else None,
        })

    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    return df.sort_values('price', kind='stable').reset_index(drop=True)


def _items_html(items) -> str:
    return '<ul>' + ''.join(f'<li>{html.escape(item)}</li>' for item in items) + '</ul>'


def _charge_html(row) -> str:
    if not row.has_charge:
        return '-'
    charge_date = html.escape(row.charge_date) if row.charge_date else 'undated'
    return (
        f'<span class="is-size-7">{charge_date}<br>{html.escape(row.card)}<br>'
        f'${row.charge_amount:.2f}</span>'
    )


def _order_html(row) -> str:
    outcome = f' ({OUTCOME_GLYPHS[row.outcome]})' if row.outcome is not None else ''
    css_class = '' if row.has_charge else 'has-background-danger-light'
    return f"""
            <tr class="{css_class}">
                <td><a href="{html.escape(row.href)}" target="_blank">{html.escape(row.order_id)}</a>{outcome}</td>
                <td>{_items_html(row.items)}</td>
                <td>{_charge_html(row)}</td>
                <td>${row.price:.2f}</td>
            </tr>"""


def render_html(
    orders: Sequence[Order],
    outcomes: Optional[Sequence[SyncOutcome]] = None,
    stylesheet_url: str = DEFAULT_STYLESHEET,
) -> str:
    """
    Render the order table as a standalone HTML document

    Args:
        orders: Reconciled orders
        outcomes: Sync outcomes aligned with orders (optional)
        stylesheet_url: The one external stylesheet the page links

    Returns:
        HTML document text
    """
    df = orders_frame(orders, outcomes)
    rows = ''.join(_order_html(row) for row in df.itertuples(index=False))
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Order Summary</title>
    <link rel="stylesheet" href="{html.escape(stylesheet_url)}">
</head>
<body>
    <section class="section">
        <h1 class="title">Order Summary</h1>
        <table class="table is-striped is-fullwidth">
            <thead>
                <tr><th>Order</th><th>Items</th><th>Charge</th><th>Price</th></tr>
            </thead>
            <tbody>{rows}
            </tbody>
        </table>
    </section>
</body>
</html>
"""


def write_html_report(
    output_path: Path,
    orders: Sequence[Order],
    outcomes: Optional[Sequence[SyncOutcome]] = None,
    stylesheet_url: str = DEFAULT_STYLESHEET,
) -> Path:
    """Write render_html() output to a file and return its path"""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(render_html(orders, outcomes, stylesheet_url))
    logger.info(f"Generated HTML report: {output_path}")
    return output_path
