#!/usr/bin/env python3
"""
Rule Loader Tests: packaged rules, shared.yaml merging, caching and hot-reload
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from order_sync.models import Layout
from order_sync.rule_loader import DEFAULT_RULES_DIR, RuleLoader


class TestPackagedRules(unittest.TestCase):
    """The rules shipped with the package cover every layout and listing page"""

    @classmethod
    def setUpClass(cls):
        cls.loader = RuleLoader()

    def test_default_rules_dir(self):
        self.assertEqual(self.loader.rules_dir, DEFAULT_RULES_DIR)
        self.assertTrue((DEFAULT_RULES_DIR / 'shared.yaml').exists())

    def test_every_layout_has_rules(self):
        for layout in Layout:
            rules = self.loader.get_invoice_layout_rules(layout)
            self.assertIn('item_selector', rules, f"{layout.value} has no item selector")

    def test_invoice_rules_inherit_shared_section(self):
        rules = self.loader.get_invoice_layout_rules(Layout.SUBSCRIBE_AND_SAVE)
        self.assertEqual(rules['emphasized_selector'], 'td b')
        self.assertEqual(rules['items_heading'], 'Items Ordered')

    def test_listing_rules_inherit_base_url(self):
        for listing in ('transactions', 'order_history'):
            rules = self.loader.get_listing_rules(listing)
            self.assertEqual(rules['base_url'], 'https://www.amazon.com')
            self.assertIn('next_page_selector', rules)

    def test_unknown_listing_raises(self):
        with self.assertRaises(KeyError):
            self.loader.get_listing_rules('wishlist')

    def test_layout_detection_rules(self):
        rules = self.loader.get_layout_detection_rules()
        self.assertEqual(rules['digital_id_prefix'], 'D')
        self.assertEqual(rules['subscribe_and_save']['label_prefix'], 'Subscribe and Save')

    def test_charge_rules(self):
        rules = self.loader.get_charge_rules()
        self.assertEqual(rules['marker_prefix'], 'Credit Card transactions')
        self.assertGreater(rules['max_date_scan'], 0)


class TestRuleCaching(unittest.TestCase):
    """Rule files are read once unless hot-reload is enabled"""

    def setUp(self):
        self.rules_dir = Path(tempfile.mkdtemp())
        shutil.copytree(DEFAULT_RULES_DIR, self.rules_dir, dirs_exist_ok=True)

    def tearDown(self):
        shutil.rmtree(self.rules_dir, ignore_errors=True)

    def test_hot_reload_default_off(self):
        loader = RuleLoader(self.rules_dir)
        self.assertFalse(loader._enable_hot_reload)
        self.assertIsNone(loader._file_checksums)

    def test_no_duplicate_reads_hot_reload_off(self):
        loader = RuleLoader(self.rules_dir)
        loader.reset_file_read_count()

        first = loader.get_invoice_layout_rules(Layout.STANDARD)
        first_read_count = loader.get_file_read_count()
        second = loader.get_invoice_layout_rules(Layout.STANDARD)

        self.assertGreater(first_read_count, 0)
        self.assertEqual(loader.get_file_read_count(), first_read_count)
        self.assertEqual(first, second)

    def test_changes_ignored_when_hot_reload_off(self):
        loader = RuleLoader(self.rules_dir)
        self.assertEqual(loader.get_layout_detection_rules()['digital_id_prefix'], 'D')

        self._rewrite_digital_prefix('X')
        self.assertEqual(loader.get_layout_detection_rules()['digital_id_prefix'], 'D')

    def test_changes_picked_up_when_hot_reload_on(self):
        loader = RuleLoader(self.rules_dir, enable_hot_reload=True)
        self.assertEqual(loader.get_layout_detection_rules()['digital_id_prefix'], 'D')

        self._rewrite_digital_prefix('X')
        self.assertEqual(loader.get_layout_detection_rules()['digital_id_prefix'], 'X')

    def test_clear_cache_forces_reload(self):
        loader = RuleLoader(self.rules_dir)
        loader.get_layout_detection_rules()
        self._rewrite_digital_prefix('X')

        loader.clear_cache()
        self.assertEqual(loader.get_layout_detection_rules()['digital_id_prefix'], 'X')

    def test_missing_rule_file_gives_empty_rules(self):
        (self.rules_dir / '10_layout_detection.yaml').unlink()
        self.assertEqual(RuleLoader(self.rules_dir).get_layout_detection_rules(), {})

    def _rewrite_digital_prefix(self, prefix: str):
        path = self.rules_dir / '10_layout_detection.yaml'
        text = path.read_text(encoding='utf-8').replace('digital_id_prefix: "D"', f'digital_id_prefix: "{prefix}"')
        path.write_text(text, encoding='utf-8')


if __name__ == '__main__':
    unittest.main()
