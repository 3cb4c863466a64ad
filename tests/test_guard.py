"""Tests for the isolation guard and its injection.

Behavior of the script itself is checked by running it under node against
the stub DOM in ``tests/js/guard_harness.js``; those tests are skipped when
node is not installed.
"""

import json
import os
import shutil
import subprocess
import tempfile
import unittest

from bs4 import BeautifulSoup

from proxy_viewer.parser.guard import GUARD_SCRIPT, LAYOUT_STYLE, GuardInjector

NODE = shutil.which("node")
HARNESS = os.path.join(os.path.dirname(os.path.abspath(__file__)), "js", "guard_harness.js")


def _relay(url: str) -> list:
    return [{"type": "navigate", "url": url}]


class GuardScriptTests(unittest.TestCase):
    def test_script_is_self_contained(self) -> None:
        self.assertNotIn("<script", GUARD_SCRIPT)
        self.assertNotIn("</script", GUARD_SCRIPT)
        self.assertNotIn("import ", GUARD_SCRIPT)
        self.assertNotIn("http://", GUARD_SCRIPT)
        self.assertNotIn("https://", GUARD_SCRIPT)

    def test_navigation_is_relayed_with_fixed_message_shape(self) -> None:
        self.assertIn("window.parent.postMessage({ type: 'navigate', url: url }, '*')", GUARD_SCRIPT)

    def test_forms_are_intercepted_every_way(self) -> None:
        self.assertIn("document.addEventListener('submit', onFormSubmit, true)", GUARD_SCRIPT)
        self.assertIn("form.onsubmit = onFormSubmit", GUARD_SCRIPT)
        self.assertIn("HTMLFormElement.prototype.submit", GUARD_SCRIPT)
        self.assertIn("subscribeAddedElements(hijackForms)", GUARD_SCRIPT)
        self.assertIn("data-original-action", GUARD_SCRIPT)

    def test_link_clicks_are_intercepted(self) -> None:
        self.assertIn("document.addEventListener('click', onLinkClick, true)", GUARD_SCRIPT)
        self.assertIn("closest('a[href]')", GUARD_SCRIPT)
        self.assertIn("relayNavigation(url)", GUARD_SCRIPT)

    def test_network_and_history_primitives_are_neutralized(self) -> None:
        for needle in (
            "XMLHttpRequest.prototype.open",
            "XMLHttpRequest.prototype.send",
            "window.fetch = function",
            "navigator.sendBeacon = function",
            "history.pushState = function",
            "history.replaceState = function",
        ):
            with self.subTest(needle=needle):
                self.assertIn(needle, GUARD_SCRIPT)

    def test_noise_is_suppressed(self) -> None:
        self.assertIn("window.addEventListener('error'", GUARD_SCRIPT)
        self.assertIn("window.addEventListener('unhandledrejection'", GUARD_SCRIPT)
        self.assertIn("GuardSuppressedError", GUARD_SCRIPT)
        self.assertIn("subscribeAddedElements(removeSourceMapElements)", GUARD_SCRIPT)

    def test_single_mutation_observer_feeds_all_subscribers(self) -> None:
        self.assertEqual(GUARD_SCRIPT.count("new MutationObserver"), 1)


@unittest.skipUnless(NODE, "node is not installed")
class GuardBehaviorTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            guard_path = os.path.join(tmpdir, "guard.js")
            with open(guard_path, "w", encoding="utf-8") as f:
                f.write(GUARD_SCRIPT)
            completed = subprocess.run([NODE, HARNESS, guard_path], capture_output=True,
                                       text=True, timeout=60, check=True)
        cls.results = json.loads(completed.stdout)

    def test_form_submission_relays_get_url_from_parked_action(self) -> None:
        result = self.results["submitWithAction"]

        self.assertEqual(result["relayed"], _relay("https://ex.com/search?q=a+b&x=1"))
        self.assertTrue(result["prevented"])

    def test_form_without_action_falls_back_to_base_then_location(self) -> None:
        self.assertEqual(self.results["submitWithoutAction"]["relayed"],
                         _relay("https://ex.com/dir/page?q=a+b&x=1"))
        self.assertEqual(self.results["submitWithoutBase"]["relayed"],
                         _relay("https://ex.com/fallback?q=a+b&x=1"))

    def test_programmatic_submit_is_relayed_with_fresh_query(self) -> None:
        self.assertEqual(self.results["programmaticSubmit"]["relayed"],
                         _relay("https://other.example/find?q=a+b&x=1"))

    def test_link_click_inside_anchor_is_relayed(self) -> None:
        result = self.results["linkClick"]

        self.assertEqual(result["relayed"], _relay("https://ex.com/next"))
        self.assertTrue(result["prevented"])

    def test_modified_middle_and_script_clicks_are_left_alone(self) -> None:
        for name in ("modifiedClick", "middleClick", "scriptClick", "outsideLink"):
            with self.subTest(click=name):
                self.assertEqual(self.results[name]["relayed"], [])
                self.assertFalse(self.results[name]["prevented"])

    def test_fragment_links_scroll_in_place(self) -> None:
        for name, fragment in (("fragmentClick", "top"), ("samePageClick", "part 2")):
            with self.subTest(click=name):
                result = self.results[name]
                self.assertEqual(result["relayed"], [])
                self.assertTrue(result["prevented"])
                self.assertEqual(result["scrolled"], [fragment])

    def test_fetch_is_rejected_with_guard_error(self) -> None:
        self.assertEqual(self.results["fetch"], "GuardSuppressedError: Fetch blocked: https://api.ex.com/data")
        self.assertEqual(self.results["sourceMapFetch"],
                         "GuardSuppressedError: Source map fetch blocked: https://cdn.ex.com/app.js.map")

    def test_only_guard_rejections_are_suppressed(self) -> None:
        self.assertTrue(self.results["guardRejectionSuppressed"])
        self.assertFalse(self.results["otherRejectionSuppressed"])

    def test_source_map_elements_are_removed_on_load(self) -> None:
        self.assertTrue(self.results["sourceMapLinkRemoved"])
        self.assertFalse(self.results["plainScriptRemoved"])


class GuardInjectorTests(unittest.TestCase):
    def test_inject_prepends_base_style_and_script_to_existing_head(self) -> None:
        soup = BeautifulSoup("<html><head><title>t</title></head><body></body></html>", "html5lib")

        head = GuardInjector().inject(soup, "https://ex.com/a/b")

        names = [child.name for child in head.children if child.name]
        self.assertEqual(names, ["base", "style", "script", "title"])
        self.assertEqual(head.base["href"], "https://ex.com/a/b")
        self.assertEqual(head.style.string, LAYOUT_STYLE)
        self.assertEqual(head.script.string, GUARD_SCRIPT)
        self.assertFalse(head.script.has_attr("src"))

    def test_inject_creates_missing_head_inside_root(self) -> None:
        soup = BeautifulSoup("<html><body><p>x</p></body></html>", "html.parser")

        head = GuardInjector().inject(soup, "https://ex.com/")

        self.assertIs(head.parent, soup.html)
        self.assertIs(soup.html.contents[0], head)

    def test_inject_creates_head_without_root(self) -> None:
        soup = BeautifulSoup("<p>x</p>", "html.parser")

        head = GuardInjector().inject(soup, "https://ex.com/")

        self.assertIs(soup.contents[0], head)
        self.assertTrue(str(soup).startswith('<head><base href="https://ex.com/"/>'))


if __name__ == "__main__":
    unittest.main()
