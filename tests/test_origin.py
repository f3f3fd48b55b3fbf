# tests/test_origin.py
"""
Tests for origins and origin resolution.
"""
import httpx
import pytest

from bench.core.errors import ReadError, ResolutionError, TransportError
from bench.core.manifest import encode, write_manifest
from bench.core.models import HashItem, Manifest
from bench.services.origin import FileOrigin, HTTPOrigin, resolve_origin


MANIFEST = Manifest.from_pairs([("a.txt", "1"), ("dir/b.txt", "2")], origin="http://example.com/tree")


def serve(files: dict):
    """Build a transport serving ``files`` below /tree/."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path.startswith("/tree/") and path[len("/tree/"):] in files:
            return httpx.Response(200, content=files[path[len("/tree/"):]])
        return httpx.Response(404)

    transport = httpx.MockTransport(handler)
    transport.requests = requests
    return transport


# =============================================================================
# Resolution
# =============================================================================

@pytest.mark.parametrize("locator", ["ftp://host", "relative/path", "./tree", "", None, "file:///srv/tree"])
def test_unknown_locators_raise(locator):
    with pytest.raises(ResolutionError):
        resolve_origin(locator)


@pytest.mark.parametrize("locator", ["http://example.com/tree", "HTTPS://Example.com/tree"])
def test_http_locators(locator):
    with resolve_origin(locator) as origin:
        assert isinstance(origin, HTTPOrigin)
        assert origin.locator == locator


def test_absolute_path_locator(tmp_path):
    origin = resolve_origin(str(tmp_path))

    assert isinstance(origin, FileOrigin)
    assert origin.root == tmp_path


def test_resolution_does_not_scan():
    transport = serve({})

    origin = resolve_origin("http://example.com/tree", transport=transport)
    origin.close()

    assert transport.requests == []


# =============================================================================
# FileOrigin
# =============================================================================

def test_file_origin_scan_and_get(make_tree):
    root = make_tree({"a.txt": "hello", "dir/b.txt": b"\x00\x01"})
    write_manifest(root, MANIFEST)

    origin = FileOrigin(str(root))

    assert origin.scan() == MANIFEST
    assert origin.get("a.txt") == b"hello"
    assert origin.get("dir/b.txt") == b"\x00\x01"


def test_file_origin_without_manifest_is_empty(tmp_path):
    assert FileOrigin(str(tmp_path)).scan() == Manifest()


def test_file_origin_custom_manifest_name(make_tree):
    root = make_tree({"other.manifest": "x:1\n"})

    assert FileOrigin(str(root), "other.manifest").scan().items == [HashItem("x", "1")]


def test_file_origin_missing_file_raises(tmp_path):
    with pytest.raises(ReadError):
        FileOrigin(str(tmp_path)).get("absent")


@pytest.mark.parametrize("name", ["../secret", "a/../../secret", "/etc/passwd", ""])
def test_file_origin_refuses_escaping_names(make_tree, name):
    root = make_tree({"a": "x"})

    with pytest.raises(ReadError):
        FileOrigin(str(root)).get(name)


# =============================================================================
# HTTPOrigin
# =============================================================================

def test_http_origin_scan():
    transport = serve({".patch": encode(MANIFEST).encode("utf-8")})

    with HTTPOrigin("http://example.com/tree", transport=transport) as origin:
        assert origin.scan() == MANIFEST

    assert str(transport.requests[0].url) == "http://example.com/tree/.patch"


def test_http_origin_get_nested_name():
    transport = serve({"dir/b.txt": b"payload"})

    with HTTPOrigin("http://example.com/tree/", transport=transport) as origin:
        assert origin.get("dir/b.txt") == b"payload"


def test_http_origin_not_found_raises():
    with HTTPOrigin("http://example.com/tree", transport=serve({})) as origin:
        with pytest.raises(TransportError):
            origin.get("absent")
        with pytest.raises(TransportError):
            origin.scan()


def test_http_origin_connection_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with HTTPOrigin("http://example.com/tree", transport=httpx.MockTransport(handler)) as origin:
        with pytest.raises(TransportError):
            origin.get("a.txt")


def test_http_origin_follows_redirects():
    def handler(request):
        if request.url.path == "/tree/old":
            return httpx.Response(302, headers={"Location": "http://example.com/tree/new"})
        if request.url.path == "/tree/new":
            return httpx.Response(200, content=b"moved")
        return httpx.Response(404)

    with HTTPOrigin("http://example.com/tree", transport=httpx.MockTransport(handler)) as origin:
        assert origin.get("old") == b"moved"


def test_http_origin_tolerates_garbage_manifest():
    transport = serve({".patch": b"garbage-no-separator"})

    with HTTPOrigin("http://example.com/tree", transport=transport) as origin:
        assert origin.scan() == Manifest()
