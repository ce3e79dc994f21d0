import threading

import pytest

from webmount.domain.credentials import TokenGate
from webmount.domain.registry import MountError, MountRegistry


def handler(request, sub_path):
    return None


def test_register_normalizes_and_defaults_label():
    reg = MountRegistry()
    out = reg.register("notes", "notes/", handler)
    assert out.prefix == "/notes"
    assert out.label == "notes"
    assert out.skip_auth is False


def test_reregister_replaces_in_place():
    reg = MountRegistry()
    reg.register("a", "/a", handler)
    reg.register("b", "/b", handler)
    reg.register("a", "/z", handler, label="Zed")
    infos = reg.list()
    assert [i.name for i in infos] == ["a", "b"]
    assert infos[0].prefix == "/z"
    assert infos[0].label == "Zed"
    assert len(reg) == 2


def test_unregister_reports_presence():
    reg = MountRegistry()
    reg.register("a", "/a", handler)
    assert reg.unregister("a") is True
    assert reg.unregister("a") is False
    assert "a" not in reg


def test_list_excludes_handler_and_uses_aliases():
    reg = MountRegistry()
    reg.register("chat", "/api/chat", handler, description="Chat", skip_auth=True)
    dumped = reg.list()[0].model_dump(by_alias=True)
    assert dumped == {
        "name": "chat",
        "label": "chat",
        "description": "Chat",
        "prefix": "/api/chat",
        "skipAuth": True,
    }


def test_list_api_filters_namespace():
    reg = MountRegistry()
    reg.register("web", "/web", handler)
    reg.register("chat", "/api/chat", handler)
    assert [i.name for i in reg.list_api()] == ["chat"]


def test_snapshot_is_stable_across_writes():
    reg = MountRegistry()
    reg.register("a", "/a", handler)
    snap = reg.snapshot()
    reg.register("b", "/b", handler)
    reg.unregister("a")
    assert [r.name for r in snap] == ["a"]


@pytest.mark.parametrize(
    "name, prefix, fn",
    [("", "/x", handler), ("x", "/", handler), ("x", "/x", "not callable")],
)
def test_invalid_registrations(name, prefix, fn):
    with pytest.raises(MountError):
        MountRegistry().register(name, prefix, fn)


def test_concurrent_readers_never_see_a_partial_table():
    reg = MountRegistry()
    reg.register("stable", "/stable", handler)
    reg.register("moving", "/p0", handler, label="L0")
    done = threading.Event()

    def writer():
        i = 0
        while not done.is_set():
            i += 1
            reg.register("moving", f"/p{i}", handler, label=f"L{i}")
            if i % 2:
                reg.register("tmp", "/tmp", handler)
            else:
                reg.unregister("tmp")

    thread = threading.Thread(target=writer, daemon=True)
    thread.start()
    try:
        for _ in range(2000):
            snap = reg.snapshot()
            names = [r.name for r in snap]
            assert names[:2] == ["stable", "moving"]
            assert len(snap) in (2, 3)
            moving = snap[1]
            assert moving.label == "L" + moving.prefix[2:]
    finally:
        done.set()
        thread.join(5.0)


def test_token_gate_readers_see_whole_credentials():
    gate = TokenGate()
    gate.set_full_token("T0")
    done = threading.Event()

    def writer():
        i = 0
        while not done.is_set():
            i += 1
            gate.set_full_token(f"T{i % 2}")

    thread = threading.Thread(target=writer, daemon=True)
    thread.start()
    try:
        for _ in range(2000):
            creds = gate.credentials
            assert creds.full_token in ("T0", "T1")
            assert creds.read_token is None
    finally:
        done.set()
        thread.join(5.0)
