"""Tests for the render host and its display handles."""

import unittest

from proxy_viewer.ui.render_host import (
    BLOB_PREFIX,
    DATA_URI_PREFIX,
    HandleCreationError,
    HandleRegistry,
    InMemorySurface,
    RenderError,
    RenderHost,
    RenderingSurface,
    to_data_uri,
)


class CountingRegistry(HandleRegistry):
    def __init__(self, max_bytes=None) -> None:
        super().__init__(max_bytes)
        self.revoked = []

    def revoke(self, uri: str) -> bool:
        self.revoked.append(uri)
        return super().revoke(uri)


class RefusingSurface(RenderingSurface):
    def load(self, uri: str) -> None:
        raise OSError("surface detached")


class HandleRegistryTests(unittest.TestCase):
    def test_create_read_revoke(self) -> None:
        registry = HandleRegistry()

        uri = registry.create("<p>é</p>")

        self.assertTrue(uri.startswith(BLOB_PREFIX))
        self.assertEqual(registry.read(uri), "<p>é</p>")
        self.assertEqual(registry.size, len("<p>é</p>".encode("utf-8")))
        self.assertTrue(registry.revoke(uri))
        self.assertFalse(registry.revoke(uri))
        self.assertIsNone(registry.read(uri))
        self.assertEqual(registry.size, 0)

    def test_capacity_is_enforced(self) -> None:
        registry = HandleRegistry(max_bytes=10)
        registry.create("12345")

        with self.assertRaises(HandleCreationError):
            registry.create("123456")
        self.assertEqual(len(registry), 1)


class RenderHostTests(unittest.TestCase):
    def test_display_loads_blob_handle(self) -> None:
        surface = InMemorySurface()
        host = RenderHost(surface, release_delay=0)

        handle = host.display("<p>one</p>")

        self.assertFalse(handle.inline)
        self.assertEqual(surface.source, handle.uri)
        self.assertEqual(host.current_document(), "<p>one</p>")

    def test_previous_handle_released_immediately_without_delay(self) -> None:
        registry = CountingRegistry()
        host = RenderHost(InMemorySurface(), registry, release_delay=0)

        first = host.display("<p>one</p>")
        second = host.display("<p>two</p>")

        self.assertTrue(first.released)
        self.assertFalse(second.released)
        self.assertEqual(registry.revoked, [first.uri])
        self.assertEqual(len(registry), 1)

    def test_delayed_releases_are_flushed_exactly_once_on_close(self) -> None:
        registry = CountingRegistry()
        host = RenderHost(InMemorySurface(), registry, release_delay=60)

        handles = [host.display(f"<p>{n}</p>") for n in range(3)]

        self.assertEqual(host.pending_releases, 2)
        self.assertEqual(registry.revoked, [])

        host.close()
        host.close()

        self.assertTrue(all(handle.released for handle in handles))
        self.assertEqual(sorted(registry.revoked), sorted(handle.uri for handle in handles))
        self.assertEqual(host.pending_releases, 0)
        self.assertEqual(len(registry), 0)
        self.assertIsNone(host.current_document())

    def test_falls_back_to_data_uri_when_handle_creation_fails(self) -> None:
        surface = InMemorySurface()
        host = RenderHost(surface, HandleRegistry(max_bytes=4), release_delay=0)

        with self.assertLogs("proxy_viewer.ui.render_host", level="WARNING"):
            handle = host.display("<p>too big & <b>bold</b></p>")

        self.assertTrue(handle.inline)
        self.assertTrue(surface.source.startswith(DATA_URI_PREFIX))
        self.assertEqual(surface.source, to_data_uri("<p>too big & <b>bold</b></p>"))
        self.assertEqual(host.current_document(), "<p>too big & <b>bold</b></p>")

    def test_surface_failure_releases_new_handle_and_keeps_previous(self) -> None:
        registry = CountingRegistry()
        host = RenderHost(InMemorySurface(), registry, release_delay=0)
        first = host.display("<p>one</p>")

        host.surface = RefusingSurface()
        with self.assertRaises(RenderError):
            host.display("<p>two</p>")

        self.assertIs(host.current_handle, first)
        self.assertFalse(first.released)
        self.assertEqual(len(registry.revoked), 1)
        self.assertEqual(len(registry), 1)


class RenderingSurfaceTests(unittest.TestCase):
    def test_surface_must_implement_load(self) -> None:
        with self.assertRaises(TypeError):
            RenderingSurface()


class DataUriTests(unittest.TestCase):
    def test_encoding_is_fully_escaped(self) -> None:
        self.assertEqual(to_data_uri("<a href='/x'>?#</a>"),
                         DATA_URI_PREFIX + "%3Ca%20href%3D%27%2Fx%27%3E%3F%23%3C%2Fa%3E")


if __name__ == "__main__":
    unittest.main()
