#!/usr/bin/env python3
"""
Layout Detection - Apply invoice layout rules from 10_layout_detection.yaml
Decides which extraction strategy applies to an opened invoice
"""

import logging

from bs4 import BeautifulSoup

from .models import Layout
from .parsing import normalize_text

logger = logging.getLogger(__name__)


class LayoutDetector:
    """Classify invoices as Standard, Subscribe & Save or Digital"""

    def __init__(self, rule_loader):
        """
        Initialize layout detector

        Args:
            rule_loader: RuleLoader instance
        """
        self.rule_loader = rule_loader
        self.detection_rules = rule_loader.get_layout_detection_rules()

    def detect(self, order_id: str, document: BeautifulSoup) -> Layout:
        """
        Detect the invoice layout

        Digital orders are recognized by id alone and never reach the
        HTML checks.

        Args:
            order_id: Retailer order id from the listing stub
            document: Parsed invoice document

        Returns:
            Layout variant
        """
        prefix = self.detection_rules.get('digital_id_prefix', 'D')
        if order_id and order_id.startswith(prefix):
            logger.debug(f"Order {order_id}: digital layout (id prefix {prefix!r})")
            return Layout.DIGITAL

        if self._is_subscribe_and_save(document):
            logger.debug(f"Order {order_id}: Subscribe & Save layout")
            return Layout.SUBSCRIBE_AND_SAVE

        return Layout.STANDARD

    def _is_subscribe_and_save(self, document: BeautifulSoup) -> bool:
        config = self.detection_rules.get('subscribe_and_save', {})
        selector = config.get('selector', 'b')
        label = config.get('label_prefix', 'Subscribe and Save')
        return any(normalize_text(el).startswith(label) for el in document.select(selector))
