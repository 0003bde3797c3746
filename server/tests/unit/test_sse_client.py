from __future__ import annotations
import httpx
import pytest

pytestmark = pytest.mark.unit

URL = "http://backend.invalid/alerts/stream"


def _feed(parser, text):
    events = []
    for line in text.split("\n"):
        ev = parser.feed_line(line)
        if ev is not None:
            events.append(ev)
    return events


def test_parser_assembles_named_events():
    from pixoverlay.infrastructure.stream.sse_client import SseParser

    p = SseParser()
    events = _feed(p, 'event: pix\ndata: {"a":1}\nid: 10\n\n: ping\n\ndata: l1\ndata: l2\n\n')

    assert [(e.event, e.data, e.id) for e in events] == [
        ("pix", '{"a":1}', "10"),
        ("message", "l1\nl2", "10"),
    ]
    assert p.last_event_id == "10"


def test_parser_retry_only_block():
    from pixoverlay.infrastructure.stream.sse_client import SseParser

    p = SseParser()
    events = _feed(p, "retry: 5000\n\nretry: abc\n\n")
    assert len(events) == 1
    assert events[0].retry_ms == 5000
    assert events[0].event == ""


def test_parser_handles_crlf_and_no_space():
    from pixoverlay.infrastructure.stream.sse_client import SseParser

    p = SseParser()
    assert p.feed_line("event:pix\r\n") is None
    assert p.feed_line("data:x\r\n") is None
    ev = p.feed_line("\r\n")
    assert (ev.event, ev.data) == ("pix", "x")


def _stream_response(body: str) -> httpx.Response:
    return httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=body.encode("utf-8"))


def _client(handler, handlers, **kw):
    from pixoverlay.infrastructure.stream.sse_client import EventStreamClient

    return EventStreamClient(
        URL,
        handlers,
        reconnect_delay=kw.get("reconnect_delay", 0.001),
        max_backoff=kw.get("max_backoff", 0.01),
        transport=httpx.MockTransport(handler),
    )


def test_dispatches_named_events_and_tracks_state(run):
    received: list[str] = []
    states: list[str] = []

    def transport_handler(request):
        return _stream_response(
            "event: connected\ndata: {}\n\n"
            'event: pix\ndata: {"paymentId": 1}\n\n'
            "event: other\ndata: ignored\n\n"
            'event: pix\ndata: {"paymentId": 2}\n\n'
        )

    def on_pix(data):
        received.append(data)
        if len(received) == 2:
            client.stop()

    client = _client(transport_handler, {"pix": on_pix})
    client.subscribe(lambda _topic: states.append(client.state))
    run(client.run())

    assert received == ['{"paymentId": 1}', '{"paymentId": 2}']
    assert states[0] == "connected"


def test_reconnects_after_errors(run):
    calls = {"n": 0}
    received: list[str] = []
    states: list[str] = []

    def transport_handler(request):
        calls["n"] += 1
        if calls["n"] <= 2:
            return httpx.Response(503, text="unavailable")
        return _stream_response("event: pix\ndata: ok\n\n")

    def on_pix(data):
        received.append(data)
        client.stop()

    client = _client(transport_handler, {"pix": on_pix})
    client.subscribe(lambda _topic: states.append(client.state))
    run(client.run())

    assert calls["n"] == 3
    assert received == ["ok"]
    assert "error" in states
    assert states[-1] == "connected"


def test_sends_last_event_id_on_reconnect(run):
    seen_headers: list = []

    def transport_handler(request):
        seen_headers.append(request.headers.get("Last-Event-ID"))
        if len(seen_headers) == 1:
            return _stream_response("id: 7\nevent: pix\ndata: first\n\n")
        return _stream_response("event: pix\ndata: second\n\n")

    received: list[str] = []

    def on_pix(data):
        received.append(data)
        if data == "second":
            client.stop()

    client = _client(transport_handler, {"pix": on_pix})
    run(client.run())

    assert seen_headers == [None, "7"]
    assert received == ["first", "second"]
    assert client.last_event_id == "7"


def test_failing_handler_does_not_kill_stream(run):
    received: list[str] = []

    def transport_handler(request):
        return _stream_response("event: pix\ndata: bad\n\nevent: pix\ndata: good\n\n")

    def on_pix(data):
        if data == "bad":
            raise RuntimeError("handler bug")
        received.append(data)
        client.stop()

    client = _client(transport_handler, {"pix": on_pix})
    run(client.run())
    assert received == ["good"]


def test_backoff_is_capped():
    from pixoverlay.infrastructure.stream.sse_client import EventStreamClient

    c = EventStreamClient(URL, {}, reconnect_delay=1.0, max_backoff=8.0)
    delays = [c._next_backoff() for _ in range(10)]
    assert delays[0] == 1.0
    assert all(1.0 <= d <= 8.0 for d in delays)
