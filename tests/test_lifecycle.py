import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest
from fastapi.responses import StreamingResponse

from conftest import bearer, echo
from webmount import WebServer


@pytest.fixture
def live():
    server = WebServer(host="127.0.0.1")
    yield server
    server.stop()


def test_observers_before_start(live):
    assert live.is_running() is False
    assert live.get_port() is None
    assert live.get_url() is None
    assert live.stop() is False


def test_start_serves_and_stop_closes(live):
    live.mount("ext", "/ext", echo("ext"))
    url = live.start(0)
    port = live.get_port()
    assert live.is_running()
    assert port and url == f"http://localhost:{port}"

    r = httpx.get(f"http://127.0.0.1:{port}/ext/ping", timeout=5.0)
    assert r.json() == {"mount": "ext", "sub_path": "/ping", "method": "GET"}

    assert live.stop() is True
    assert live.is_running() is False
    assert live.get_port() is None
    assert live.stop() is False
    with pytest.raises(httpx.TransportError):
        httpx.get(f"http://127.0.0.1:{port}/ext/ping", timeout=2.0)


def test_start_while_running_restarts(live):
    live.start(0)
    first = live.get_port()
    live.set_api_token("F")
    live.start(0)
    second = live.get_port()
    assert live.is_running()
    with pytest.raises(httpx.TransportError):
        httpx.get(f"http://127.0.0.1:{first}/", timeout=2.0)
    r = httpx.get(f"http://127.0.0.1:{second}/api", headers=bearer("F"), timeout=5.0)
    assert r.status_code == 200


def test_restart_on_same_port(live):
    live.start(0)
    port = live.get_port()
    live.stop()
    assert live.start(port) == f"http://localhost:{port}"
    assert httpx.get(f"http://127.0.0.1:{port}/", timeout=5.0).status_code == 200


def test_port_in_use_raises(live):
    live.start(0)
    other = WebServer(host="127.0.0.1")
    with pytest.raises(OSError):
        other.start(live.get_port())
    assert other.is_running() is False


def test_invalid_port(live):
    with pytest.raises(ValueError):
        live.start(70000)


def test_stream_failure_after_first_chunk_is_not_a_500(live):
    def broken(request, sub_path):
        def body():
            yield b"partial"
            raise RuntimeError("upstream went away")

        return StreamingResponse(body(), media_type="text/plain")

    live.mount("broken", "/broken", broken)
    live.start(0)

    received = b""
    with httpx.stream("GET", f"http://127.0.0.1:{live.get_port()}/broken", timeout=5.0) as r:
        assert r.status_code == 200
        try:
            for chunk in r.iter_raw():
                received += chunk
        except httpx.TransportError:
            pass
    assert received == b"partial"


def test_requests_see_old_or_new_state_during_writes(live):
    def tagged(tag):
        return lambda request, sub_path: {"tag": tag}

    live.mount("swap", "/swap", tagged("a"))
    live.set_api_token("T1")
    live.start(0)
    base = f"http://127.0.0.1:{live.get_port()}"

    done = threading.Event()

    def writer():
        i = 0
        while not done.is_set():
            live.mount("swap", "/swap", tagged("b" if i % 2 else "a"))
            live.set_api_token("T2" if i % 2 else "T1")
            if i % 2:
                live.unmount("flicker")
            else:
                live.mount("flicker", "/flicker", tagged("f"))
            i += 1

    def reader(_):
        with httpx.Client(base_url=base, timeout=5.0) as c:
            swap = c.get("/swap")
            flicker = c.get("/flicker")
            api = c.get("/api", headers=bearer("T1"))
        return swap.status_code, swap.json(), flicker.status_code, api.status_code

    thread = threading.Thread(target=writer, daemon=True)
    thread.start()
    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(reader, range(80)))
    finally:
        done.set()
        thread.join(5.0)

    for swap_status, swap_body, flicker_status, api_status in results:
        assert swap_status == 200
        assert swap_body in ({"tag": "a"}, {"tag": "b"})
        assert flicker_status in (200, 404)
        assert api_status in (200, 401)
