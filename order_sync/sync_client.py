#!/usr/bin/env python3
"""
Sync Client - push reconciled orders to the purchases API

PUT  {base}/{id}  upsert, safe to repeat
POST {base}       create, a repeat answers 409

Responses are classified through a fixed status table. Nothing is retried;
a request that gets no response at all is reported as UNREACHABLE.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from types import MappingProxyType
from typing import Callable, List, Optional, Sequence

import requests

from .errors import NetworkError
from .models import Order, SyncOutcome

logger = logging.getLogger(__name__)

STATUS_OUTCOMES = MappingProxyType({
    200: SyncOutcome.UPDATED,
    201: SyncOutcome.CREATED,
    409: SyncOutcome.CONFLICT,
    500: SyncOutcome.SERVER_ERROR,
})

SYNC_METHODS = ('PUT', 'POST')


def outcome_for_status(status_code: int) -> SyncOutcome:
    return STATUS_OUTCOMES.get(status_code, SyncOutcome.UNKNOWN)


class SyncClient:
    """Upsert orders into the remote purchases store"""

    def __init__(
        self,
        base_url: str,
        method: str = 'PUT',
        session_factory: Optional[Callable[[], requests.Session]] = None,
        timeout: float = 10,
        max_workers: int = 8,
    ):
        """
        Args:
            base_url: Purchases collection URL, e.g. http://localhost:8080/api/purchases
            method: 'PUT' (upsert by id) or 'POST' (create on the collection)
            session_factory: Builds the requests.Session each thread uses
                (requests.Session if omitted)
            timeout: Per-request timeout in seconds
            max_workers: Concurrent requests for sync_all
        """
        method = method.upper()
        if method not in SYNC_METHODS:
            raise ValueError(f"Unsupported sync method: {method}")
        self.base_url = base_url.rstrip('/')
        self.method = method
        self.session_factory = session_factory or requests.Session
        self.timeout = timeout
        self.max_workers = max_workers
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Session owned by the calling thread; sessions are not shared between workers"""
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._local.session = self.session_factory()
        return session

    def _url_for(self, order_id: str) -> str:
        if self.method == 'PUT':
            return f"{self.base_url}/{order_id}"
        return self.base_url

    def _send(self, order: Order) -> requests.Response:
        payload = order.to_payload()
        url = self._url_for(payload['id'])
        try:
            return self.session.request(self.method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"{self.method} {url} failed: {e}") from e

    def sync(self, order: Order) -> SyncOutcome:
        """
        Send one order and classify the response

        Args:
            order: Reconciled order

        Returns:
            SyncOutcome from the status table, or UNREACHABLE if no response arrived
        """
        try:
            response = self._send(order)
        except NetworkError as e:
            logger.error(f"Order {order.id}: store unreachable: {e}")
            return SyncOutcome.UNREACHABLE

        outcome = outcome_for_status(response.status_code)
        if outcome is SyncOutcome.UNKNOWN:
            logger.warning(f"Order {order.id}: unexpected status {response.status_code}")
        else:
            logger.debug(f"Order {order.id}: {response.status_code} -> {outcome.value}")
        return outcome

    def sync_all(self, orders: Sequence[Order]) -> List[SyncOutcome]:
        """
        Sync orders concurrently

        Returns:
            Outcomes in the same order as the input, whatever order the
            requests complete in
        """
        outcomes: List[Optional[SyncOutcome]] = [None] * len(orders)
        if not orders:
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self.sync, order): index for index, order in enumerate(orders)}
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()

        logger.info(f"Synced {len(orders)} orders to {self.base_url}")
        return outcomes
