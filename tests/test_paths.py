import pytest

from webmount.domain.paths import PrefixError, api_prefix, is_api_path, is_api_root, normalize_prefix


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("/notes", "/notes"),
        ("notes", "/notes"),
        ("/notes/", "/notes"),
        ("/notes///", "/notes"),
        ("/a/b/", "/a/b"),
    ],
)
def test_normalize_prefix(raw, expected):
    assert normalize_prefix(raw) == expected


@pytest.mark.parametrize("raw", ["/", "", "///"])
def test_root_prefix_is_rejected(raw):
    with pytest.raises(PrefixError):
        normalize_prefix(raw)


def test_api_prefix():
    assert api_prefix("/chat") == "/api/chat"
    assert api_prefix("chat/") == "/api/chat"
    assert api_prefix("/") == "/api"


def test_api_namespace_classification():
    assert is_api_path("/api")
    assert is_api_path("/api/")
    assert is_api_path("/api/chat/x")
    assert not is_api_path("/apis")
    assert not is_api_path("/_api/mounts")
    assert is_api_root("/api") and is_api_root("/api/")
    assert not is_api_root("/api/chat")
