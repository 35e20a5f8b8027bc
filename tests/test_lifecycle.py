"""Tests for mortar.lifecycle: recovery barrier, error dispatch, close handlers."""

import logging

import pytest

from mortar.app import App
from mortar.config import AppConfig
from mortar.errors import HTTPError
from mortar.testing import TestClient


class Resource:
    def __init__(self, name: str, log: list[str]) -> None:
        self.name = name
        self.log = log

    def close(self) -> None:
        self.log.append(self.name)


class AsyncResource(Resource):
    async def close(self) -> None:
        self.log.append(self.name)


def _recording_app(**config) -> tuple[App, list[BaseException]]:
    errors: list[BaseException] = []

    def on_error(ctx, err):
        errors.append(err)
        ctx.writer.write_header(500)
        ctx.write_str("handled")

    return App(AppConfig(error_handler=on_error, **config)), errors


class TestNormalFlow:
    async def test_no_store_by_default(self) -> None:
        app = App()

        @app.service("/ok")
        def ok(ctx):
            ctx.write_str("fine")

        async with TestClient(app) as client:
            response = await client.get("/ok")

        assert response.status == 200
        assert response.text == "fine"
        assert response.header("Cache-Control") == "no-store"

    async def test_handler_may_override_cache_control(self) -> None:
        app = App()

        @app.service("/cached")
        def cached(ctx):
            ctx.cache_time(30)
            ctx.write_str("x")

        async with TestClient(app) as client:
            response = await client.get("/cached")

        assert response.header_list("Cache-Control") == ["max-age=30"]

    async def test_async_handler(self) -> None:
        app = App()

        @app.service("/async")
        async def handler(ctx):
            body = await ctx.request.text()
            ctx.write_str(body.upper())

        async with TestClient(app) as client:
            response = await client.post("/async", body=b"abc")

        assert response.text == "ABC"


class TestRecoveryBarrier:
    async def test_fault_calls_error_handler_once(self) -> None:
        app, errors = _recording_app()

        @app.service("/boom")
        def boom(ctx):
            raise ValueError("kaput")

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)
        assert response.status == 500
        assert response.text == "handled"

    async def test_returned_error_dispatched(self) -> None:
        app, errors = _recording_app()

        @app.service("/returned")
        def returned(ctx):
            return HTTPError(409, "conflict")

        async with TestClient(app) as client:
            await client.get("/returned")

        assert len(errors) == 1
        assert errors[0].status == 409

    async def test_default_handler_uses_error_status(self) -> None:
        app = App()

        @app.service("/missing")
        def missing(ctx):
            raise HTTPError(404, "no such <thing>")

        async with TestClient(app) as client:
            response = await client.get("/missing")

        assert response.status == 404
        assert response.text == "<p>Service Error</p><p>404: no such &lt;thing&gt;</p>"

    async def test_default_handler_500_for_plain_errors(self) -> None:
        app = App()

        @app.service("/boom")
        def boom(ctx):
            raise RuntimeError("x")

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.status == 500

    async def test_fault_in_error_handler_becomes_bare_500(self) -> None:
        def bad_handler(ctx, err):
            raise RuntimeError("handler broke")

        app = App(AppConfig(error_handler=bad_handler))

        @app.service("/boom")
        def boom(ctx):
            raise ValueError("first")

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.status == 500
        assert response.text == "Internal Server Error"

    async def test_debug_logs_traceback(self, caplog: pytest.LogCaptureFixture) -> None:
        app, _ = _recording_app(debug=True)

        @app.service("/boom")
        def boom(ctx):
            raise ValueError("kaput")

        with caplog.at_level(logging.DEBUG, logger="mortar"):
            async with TestClient(app) as client:
                await client.get("/boom")

        assert "==> kaput" in caplog.text
        assert "Traceback" in caplog.text

    async def test_fatal_aborts_request(self) -> None:
        app, errors = _recording_app()
        after = []

        @app.service("/fatal")
        def fatal(ctx):
            ctx.fatal("cannot continue", 42)
            after.append(True)

        async with TestClient(app) as client:
            await client.get("/fatal")

        assert after == []
        assert str(errors[0]) == "cannot continue 42"


class TestCloseHandlers:
    async def test_run_in_registration_order(self) -> None:
        app = App()
        log: list[str] = []

        @app.service("/res")
        def res(ctx):
            ctx.close_on_end(Resource("a", log))
            ctx.close_on_end(AsyncResource("b", log))
            ctx.close_on_end(Resource("c", log))

        async with TestClient(app) as client:
            await client.get("/res")

        assert log == ["a", "b", "c"]

    async def test_run_once_even_after_fault(self) -> None:
        app, errors = _recording_app()
        log: list[str] = []

        @app.service("/res")
        def res(ctx):
            ctx.close_on_end(Resource("a", log))
            raise ValueError("after registering")

        async with TestClient(app) as client:
            await client.get("/res")

        assert log == ["a"]
        assert len(errors) == 1

    async def test_run_once_when_handler_returns_error(self) -> None:
        app, errors = _recording_app()
        log: list[str] = []

        @app.service("/res")
        def res(ctx):
            ctx.close_on_end(Resource("a", log))
            ctx.close_on_end(AsyncResource("b", log))
            return ValueError("returned, not raised")

        async with TestClient(app) as client:
            response = await client.get("/res")

        assert log == ["a", "b"]
        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)
        assert response.text == "handled"

    async def test_failing_closer_does_not_stop_others(self) -> None:
        app = App()
        log: list[str] = []

        class Broken:
            def close(self) -> None:
                raise OSError("close failed")

        @app.service("/res")
        def res(ctx):
            ctx.close_on_end(Broken())
            ctx.close_on_end(Resource("b", log))

        async with TestClient(app) as client:
            response = await client.get("/res")

        assert log == ["b"]
        assert response.status == 200


class TestAccessLog:
    async def test_debug_writes_access_line(self, caplog: pytest.LogCaptureFixture) -> None:
        app = App(AppConfig(debug=True))

        @app.service("/hello")
        def hello(ctx):
            ctx.label = "[greeting]"
            ctx.write_str("hi")

        with caplog.at_level(logging.DEBUG, logger="mortar"):
            async with TestClient(app) as client:
                await client.get("/hello")

        lines = [r.getMessage() for r in caplog.records if "|" in r.getMessage()]
        assert len(lines) == 1
        method, elapsed, rest = lines[0].split("|")
        assert method == " GET"
        assert len(elapsed) == 12
        assert rest == "/hello [greeting]"

    async def test_quiet_without_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        app = App()

        @app.service("/hello")
        def hello(ctx):
            ctx.write_str("hi")

        with caplog.at_level(logging.DEBUG, logger="mortar"):
            async with TestClient(app) as client:
                await client.get("/hello")

        assert not [r for r in caplog.records if "|" in r.getMessage()]
