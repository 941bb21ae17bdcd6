#!/usr/bin/env python3
"""
Rule Loader - Load YAML rules from the order_sync/rules directory
Numbered rule files are merged over shared.yaml
"""

import yaml
import logging
import hashlib
from pathlib import Path
from typing import Dict, Any, Optional

from .models import Layout

logger = logging.getLogger(__name__)

DEFAULT_RULES_DIR = Path(__file__).parent / 'rules'

LAYOUT_DETECTION_FILE = '10_layout_detection.yaml'
INVOICE_LAYOUTS_FILE = '20_invoice_layouts.yaml'
LISTING_PAGES_FILE = '30_listing_pages.yaml'


class RuleLoader:
    """Load and cache YAML rules, merging shared.yaml into each rule file"""

    def __init__(self, rules_dir: Optional[Path] = None, enable_hot_reload: bool = False):
        """
        Initialize rule loader with rules directory

        Args:
            rules_dir: Path to rules directory (defaults to the packaged rules)
            enable_hot_reload: Reload a rule file whenever its checksum changes
        """
        self.rules_dir = Path(rules_dir) if rules_dir else DEFAULT_RULES_DIR
        self._rules_cache: Dict[str, Dict[str, Any]] = {}
        self._file_checksums = {} if enable_hot_reload else None
        self._enable_hot_reload = enable_hot_reload
        self._file_read_count = 0

    def _calculate_file_checksum(self, file_path: Path) -> str:
        """Calculate MD5 checksum for a file"""
        try:
            with open(file_path, 'rb') as f:
                return hashlib.md5(f.read()).hexdigest()
        except OSError as e:
            logger.warning(f"Error calculating checksum for {file_path}: {e}")
            return ''

    def _should_reload_file(self, filename: str, rule_file: Path) -> bool:
        """Check if a rule file should be (re)loaded"""
        if not self._enable_hot_reload:
            return filename not in self._rules_cache

        if not rule_file.exists():
            return False

        current_checksum = self._calculate_file_checksum(rule_file)
        cached_checksum = self._file_checksums.get(filename)
        if current_checksum != cached_checksum:
            if cached_checksum:
                logger.debug(f"Rule file {filename} modified, reloading...")
            return True
        return False

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load a YAML file directly"""
        self._file_read_count += 1
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading YAML file {file_path}: {e}")
            return {}

    def _merge_rules(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, override takes precedence"""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_rules(result[key], value)
            else:
                result[key] = value
        return result

    def load_rule_file_by_name(self, filename: str) -> Dict[str, Any]:
        """
        Load a specific rule file by filename (e.g., '10_layout_detection.yaml')

        Args:
            filename: Rule file name

        Returns:
            Rule dictionary or empty dict if not found
        """
        rule_file = self.rules_dir / filename

        if not rule_file.exists():
            logger.warning(f"Rule file not found: {rule_file}")
            return {}

        if self._should_reload_file(filename, rule_file):
            self._rules_cache[filename] = self._load_yaml_file(rule_file)
            if self._enable_hot_reload:
                self._file_checksums[filename] = self._calculate_file_checksum(rule_file)
            logger.debug(f"Loaded rule file: {filename}")
        return self._rules_cache.get(filename, {})

    def get_shared_rules(self) -> Dict[str, Any]:
        """Rules common to every extractor (charge marker, date container, scan bound)"""
        return self.load_rule_file_by_name('shared.yaml')

    def _with_shared(self, section: str, rules: Dict[str, Any]) -> Dict[str, Any]:
        shared = self.get_shared_rules().get(section, {})
        return self._merge_rules(shared, rules)

    def get_layout_detection_rules(self) -> Dict[str, Any]:
        """Get layout detection rules from 10_layout_detection.yaml"""
        rules = self.load_rule_file_by_name(LAYOUT_DETECTION_FILE)
        return rules.get('layout_detection', {})

    def get_invoice_layout_rules(self, layout: Layout) -> Dict[str, Any]:
        """
        Get selectors for one invoice layout from 20_invoice_layouts.yaml

        Args:
            layout: Layout variant

        Returns:
            Layout rules merged over the shared 'invoice' section
        """
        rules = self.load_rule_file_by_name(INVOICE_LAYOUTS_FILE)
        layouts = rules.get('invoice_layouts', {})
        return self._with_shared('invoice', layouts.get(layout.value, {}))

    def get_listing_rules(self, listing: str) -> Dict[str, Any]:
        """
        Get scan and pagination rules for a listing page lineage

        Args:
            listing: 'transactions' or 'order_history'

        Returns:
            Listing rules merged over the shared 'listing' section
        """
        rules = self.load_rule_file_by_name(LISTING_PAGES_FILE)
        listings = rules.get('listing_pages', {})
        if listing not in listings:
            raise KeyError(f"Unknown listing page type: {listing}")
        return self._with_shared('listing', listings[listing])

    def get_charge_rules(self) -> Dict[str, Any]:
        """Charge marker, date container and date formats from shared.yaml"""
        return self.get_shared_rules().get('charge', {})

    def clear_cache(self):
        """Clear the rules cache"""
        logger.debug("Clearing rules cache")
        self._rules_cache.clear()
        if self._file_checksums is not None:
            self._file_checksums.clear()

    def get_file_read_count(self) -> int:
        return self._file_read_count

    def reset_file_read_count(self):
        self._file_read_count = 0
