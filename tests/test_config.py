"""Tests for the configuration manager."""

import json
import os
import tempfile
import unittest

from proxy_viewer.utils.config import DEFAULT_CONFIG, Config


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "config.json")

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _write(self, text: str) -> None:
        with open(self.path, "w") as f:
            f.write(text)

    def test_missing_file_uses_defaults(self) -> None:
        config = Config(self.path)

        self.assertEqual(config.get("network.timeout"), 30)
        self.assertEqual(config.get("render.release_delay"), 5.0)
        self.assertEqual(config.get("viewer.home_page"), DEFAULT_CONFIG["viewer"]["home_page"])

    def test_file_is_merged_over_defaults(self) -> None:
        self._write(json.dumps({"network": {"timeout": 5, "proxy": {"enabled": True}}}))

        config = Config(self.path)

        self.assertEqual(config.get("network.timeout"), 5)
        self.assertEqual(config.get("network.retries"), 3)
        self.assertTrue(config.get("network.proxy.enabled"))
        self.assertEqual(config.get("network.proxy.url"), "")
        # Defaults are never mutated by a merge
        self.assertEqual(DEFAULT_CONFIG["network"]["timeout"], 30)

    def test_invalid_json_falls_back_to_defaults(self) -> None:
        self._write("{not json")

        with self.assertLogs("proxy_viewer.utils.config", level="ERROR"):
            config = Config(self.path)

        self.assertEqual(config.get("network.timeout"), 30)

    def test_non_object_top_level_is_ignored(self) -> None:
        self._write("[1, 2]")

        with self.assertLogs("proxy_viewer.utils.config", level="ERROR"):
            config = Config(self.path)

        self.assertEqual(config.get("logging.console_level"), "INFO")

    def test_get_and_set_with_dotted_keys(self) -> None:
        config = Config(self.path)

        self.assertEqual(config.get("nope.missing", "fallback"), "fallback")
        self.assertEqual(config.get("network.timeout.deeper", "fallback"), "fallback")

        config.set("viewer.extra.depth", 2)
        config.set("network.timeout", 9)

        self.assertEqual(config.get("viewer.extra.depth"), 2)
        self.assertEqual(config.get("network.timeout"), 9)
        self.assertEqual(DEFAULT_CONFIG["network"]["timeout"], 30)


if __name__ == "__main__":
    unittest.main()
