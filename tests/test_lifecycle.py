"""Live-socket lifecycle tests: start, serve, drain, stop."""

import asyncio
import socket
import threading
import time
from collections.abc import Iterator

import httpx
import pytest

from perch import Method, RouteEntry, Server, ServerState, new_server
from perch.errors import SerializationError, ServerStateError
from perch.server.codec import decode


def ping(request):
    return "pong"


def explode(request):
    raise RuntimeError("handler exploded")


@pytest.fixture
def server() -> Iterator[Server]:
    srv = Server(0)
    yield srv
    srv.close(timeout=5.0)


def _url(server: Server, path: str) -> str:
    return f"http://127.0.0.1:{server.port}{path}"


def _get(url: str, **kwargs) -> httpx.Response:
    return httpx.get(url, trust_env=False, **kwargs)


class TestStartStop:
    def test_construct_binds_nothing(self, server: Server) -> None:
        assert server.state is ServerState.CONSTRUCTED
        assert server.port == 0

    def test_serves_listing(self, server: Server) -> None:
        server.start()

        assert server.state is ServerState.RUNNING
        assert server.port != 0
        response = _get(_url(server, "/"))
        assert response.status_code == 200
        assert response.headers["content-type"] == "text/vnd.yaml"
        assert decode(response.content) == [{"path": "/", "method": "GET"}]

    def test_close_stops(self, server: Server) -> None:
        thread = server.start()

        server.close(timeout=5.0)

        thread.join(timeout=5.0)
        assert not thread.is_alive()
        assert server.state is ServerState.CLOSED
        with pytest.raises(httpx.ConnectError):
            _get(_url(server, "/"))

    def test_close_idempotent(self, server: Server) -> None:
        server.start()
        server.close(timeout=5.0)
        server.close(timeout=5.0)
        assert server.state is ServerState.CLOSED

    def test_close_before_run(self) -> None:
        srv = Server(0)
        srv.close()
        assert srv.state is ServerState.CLOSED

    def test_register_while_running(self, server: Server) -> None:
        server.start()
        server.register_routes([RouteEntry("/ping", Method.GET, ping)])

        assert _get(_url(server, "/ping")).text == "pong"
        assert _get(_url(server, "/ping/")).text == "pong"

    def test_new_server(self) -> None:
        srv = new_server(0)
        assert isinstance(srv, Server)
        assert srv.address == "127.0.0.1:0"


class TestStateErrors:
    def test_run_twice(self, server: Server) -> None:
        server.start()
        with pytest.raises(ServerStateError):
            server.run()

    def test_run_after_close(self) -> None:
        srv = Server(0)
        srv.close()
        with pytest.raises(ServerStateError):
            srv.run()

    def test_start_after_close(self) -> None:
        srv = Server(0)
        srv.close()
        with pytest.raises(ServerStateError):
            srv.start(timeout=2.0)


class TestBindFailure:
    def test_port_in_use_exits(self, caplog: pytest.LogCaptureFixture) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
            taken.bind(("127.0.0.1", 0))
            taken.listen(1)
            srv = Server(taken.getsockname()[1])

            with pytest.raises(SystemExit) as exc_info:
                srv.run()

        assert exc_info.value.code == 1
        assert srv.state is ServerState.CLOSED
        assert any("failed" in r.getMessage() for r in caplog.records)

    def test_start_reports_bind_failure(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
            taken.bind(("127.0.0.1", 0))
            taken.listen(1)
            srv = Server(taken.getsockname()[1])

            with pytest.raises(ServerStateError):
                srv.start(timeout=5.0)


class TestRecoveryLive:
    def test_fault_answered_and_server_survives(self, server: Server) -> None:
        server.register_routes(
            [
                RouteEntry("/boom", Method.GET, explode),
                RouteEntry("/ping", Method.GET, ping),
            ]
        )
        server.start()

        failed = _get(_url(server, "/boom"))
        served = _get(_url(server, "/ping"))

        assert failed.status_code == 500
        assert decode(failed.content) == {"code": 500, "message": "handler exploded"}
        assert served.text == "pong"
        assert server.state is ServerState.RUNNING


class TestGracefulShutdown:
    def test_in_flight_request_completes(self, server: Server) -> None:
        entered = threading.Event()

        async def slow(request):
            entered.set()
            await asyncio.sleep(0.5)
            return "done"

        server.register_routes([RouteEntry("/slow", Method.GET, slow)])
        thread = server.start()
        results: list[httpx.Response] = []

        def call() -> None:
            results.append(_get(_url(server, "/slow"), timeout=5.0))

        caller = threading.Thread(target=call)
        caller.start()
        assert entered.wait(timeout=5.0)

        server.close(wait=False)

        with pytest.raises(httpx.ConnectError):
            _get(_url(server, "/"), timeout=2.0)

        caller.join(timeout=5.0)
        thread.join(timeout=5.0)
        assert results[0].status_code == 200
        assert results[0].text == "done"
        assert server.state is ServerState.CLOSED


class TestFatalFault:
    def test_unencodable_error_stops_server(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken_encoder(payload):
            raise SerializationError("cannot encode")

        srv = Server(0)
        srv.register_routes([RouteEntry("/boom", Method.GET, explode)])
        outcome: list[BaseException] = []

        def runner() -> None:
            try:
                srv.run()
            except SystemExit as exc:
                outcome.append(exc)

        thread = threading.Thread(target=runner, daemon=True)
        thread.start()
        assert srv.wait_started(timeout=5.0)

        monkeypatch.setattr("perch.server.errors.encode_error", broken_encoder)
        response = _get(_url(srv, "/boom"), timeout=5.0)
        thread.join(timeout=10.0)

        assert response.status_code == 500
        assert not thread.is_alive()
        assert len(outcome) == 1
        assert outcome[0].code == 1
        assert srv.state is ServerState.CLOSED


class TestCloseFromHandler:
    def test_sync_handler_closes_server(self, server: Server) -> None:
        def shutdown(request):
            server.close()
            return "bye"

        server.register_routes([RouteEntry("/shutdown", Method.POST, shutdown)])
        thread = server.start()

        response = httpx.post(_url(server, "/shutdown"), timeout=5.0, trust_env=False)
        thread.join(timeout=5.0)

        assert response.status_code == 200
        assert response.text == "bye"
        assert not thread.is_alive()
        assert server.state is ServerState.CLOSED

    def test_async_handler_closes_server(self, server: Server) -> None:
        async def shutdown(request):
            server.close()
            return "bye"

        server.register_routes([RouteEntry("/shutdown", Method.POST, shutdown)])
        thread = server.start()

        response = httpx.post(_url(server, "/shutdown"), timeout=5.0, trust_env=False)
        thread.join(timeout=5.0)

        assert response.text == "bye"
        assert not thread.is_alive()


class TestStartGuard:
    def test_start_after_close_raises_at_once(self) -> None:
        srv = Server(0)
        srv.close()
        began = time.monotonic()

        with pytest.raises(ServerStateError, match="closed"):
            srv.start(timeout=30.0)

        assert time.monotonic() - began < 5.0

    def test_start_twice(self, server: Server) -> None:
        server.start()
        with pytest.raises(ServerStateError, match="running"):
            server.start(timeout=30.0)
        assert server.state is ServerState.RUNNING
