"""Tests for mortar.context: parameters, output helpers and headers."""

import logging
import os
from urllib.parse import urlencode

import pytest

from mortar.app import App
from mortar.config import AppConfig
from mortar.context import Context
from mortar.errors import BadParameter, BindError
from mortar.http.request import Request
from mortar.http.writer import ResponseWriter
from mortar.testing import TestClient


def _ctx(path: str = "/", query: bytes = b"", headers=(), app: App | None = None) -> Context:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": query,
        "headers": list(headers),
    }
    return Context(Request.from_asgi(scope, None), ResponseWriter(), app or App())


class TestParameters:
    def test_get_and_default(self) -> None:
        ctx = _ctx(query=b"name=ann&empty=")
        assert ctx.get("name") == "ann"
        assert ctx.get("empty") == ""
        assert ctx.get("missing") == ""
        assert ctx.get("missing", "x") == "x"

    def test_get_list_and_has(self) -> None:
        ctx = _ctx(query=b"tag=a&tag=b&q=1")
        assert ctx.get_list("tag") == ["a", "b"]
        assert ctx.has("tag", "q") is True
        assert ctx.has("tag", "nope") is False

    def test_get_int(self) -> None:
        ctx = _ctx(query=b"page=3&size=abc")
        assert ctx.get_int("page") == 3
        assert ctx.get_int("size", 10) == 10
        assert ctx.get_int("missing", 0) == 0

    def test_get_int_without_default_raises(self) -> None:
        ctx = _ctx(query=b"size=abc")
        with pytest.raises(BadParameter) as exc_info:
            ctx.get_int("size")
        assert exc_info.value.name == "size"
        assert exc_info.value.value == "abc"
        assert exc_info.value.status == 400

    def test_get_float(self) -> None:
        ctx = _ctx(query=b"ratio=0.5&bad=x")
        assert ctx.get_float("ratio") == 0.5
        assert ctx.get_float("bad", 1.5) == 1.5
        with pytest.raises(BadParameter):
            ctx.get_float("bad")

    @pytest.mark.parametrize("raw", [" 12 ", "1_000", "١٢", "12.0", ""])
    def test_get_int_rejects_loose_spellings(self, raw: str) -> None:
        ctx = _ctx(query=urlencode({"n": raw}).encode())
        with pytest.raises(BadParameter):
            ctx.get_int("n")
        assert ctx.get_int("n", 5) == 5

    def test_get_int_accepts_sign(self) -> None:
        ctx = _ctx(query=urlencode({"a": "-7", "b": "+3"}).encode())
        assert ctx.get_int("a") == -7
        assert ctx.get_int("b") == 3

    @pytest.mark.parametrize("raw", [" 1.5", "1_0.5", "١.5"])
    def test_get_float_rejects_loose_spellings(self, raw: str) -> None:
        ctx = _ctx(query=urlencode({"x": raw}).encode())
        with pytest.raises(BadParameter):
            ctx.get_float("x")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("t", True), ("TRUE", True), ("True", True), ("0", False), ("yes", False)],
    )
    def test_get_bool(self, raw: str, expected: bool) -> None:
        assert _ctx(query=f"flag={raw}".encode()).get_bool("flag") is expected

    def test_get_bool_missing(self) -> None:
        assert _ctx().get_bool("flag") is False

    async def test_form_body_used_for_posts(self) -> None:
        app = App()
        seen = {}

        @app.service("/form")
        def form(ctx):
            seen["name"] = ctx.get("name")
            seen["age"] = ctx.get_int("age")

        async with TestClient(app) as client:
            await client.post("/form?name=query", form={"name": "body", "age": "7"})

        assert seen == {"name": "body", "age": 7}

    async def test_form_body_replaces_query(self) -> None:
        app = App()
        seen = {}

        @app.service("/form")
        def form(ctx):
            seen["only"] = ctx.get("only")
            seen["has"] = ctx.has("only")

        async with TestClient(app) as client:
            await client.post("/form?only=query", form={"name": "body"})

        assert seen == {"only": "", "has": False}

    def test_accept_language(self) -> None:
        ctx = _ctx(headers=[(b"accept-language", b"zh-CN,zh;q=0.9,en;q=0.8")])
        assert ctx.accept_language() == "zh-CN"
        assert _ctx().accept_language() == ""


class TestUrlParam:
    def test_exact_fit(self) -> None:
        values, surplus = _ctx("/files/img/2024/a.png").url_param("img", 2)
        assert values == ["2024", "a.png"]
        assert surplus == 0

    def test_extra_segments(self) -> None:
        values, surplus = _ctx("/files/img/2024/a.png").url_param("img", 1)
        assert values == ["2024"]
        assert surplus == 1

    def test_missing_segments(self) -> None:
        values, surplus = _ctx("/files/img/2024").url_param("img", 3)
        assert values == ["2024"]
        assert surplus == -2

    def test_base_absent(self) -> None:
        with pytest.raises(BindError):
            _ctx("/files/doc").url_param("img", 1)

    def test_no_slots(self) -> None:
        with pytest.raises(BindError):
            _ctx("/files/img/a").url_param("img", 0)


class TestOutput:
    def test_write_str(self) -> None:
        ctx = _ctx()
        ctx.write_str("hello")
        ctx.write(b" world")
        assert ctx.writer.body == b"hello world"

    def test_json(self) -> None:
        ctx = _ctx()
        ctx.json({"a": [1, 2]})
        assert ctx.writer.body == b'{"a": [1, 2]}\n'
        assert ctx.writer.headers.get("Content-Type") == "application/json; charset=utf-8"

    def test_json_unserializable(self) -> None:
        ctx = _ctx()
        ctx.json({"a": object()})
        assert ctx.writer.status == 500
        assert ctx.writer.body == b"server error 500"

    def test_write_err(self, caplog: pytest.LogCaptureFixture) -> None:
        ctx = _ctx(app=App(AppConfig(logger=logging.getLogger("test.ctx"))))
        with caplog.at_level(logging.ERROR, logger="test.ctx"):
            ctx.write_err(ValueError("bad input"))
        assert ctx.writer.body == b"bad input"
        assert ctx.writer.status == 200
        assert "bad input" in caplog.text

    def test_write_css(self) -> None:
        ctx = _ctx()
        ctx.write_css("/a.css")
        assert ctx.writer.body == b"<link type='text/css' href='/a.css' rel='stylesheet'/>"

    def test_tag(self) -> None:
        ctx = _ctx()
        ctx.tag("div", lambda: ctx.write_str("inside"), "class", "box", "id", "x")
        assert ctx.writer.body == b'<div class="box" id="x">inside</div>'

    def test_text_tag_escapes(self) -> None:
        ctx = _ctx()
        ctx.text_tag("span", "<b>", "title", 'say "hi"')
        assert ctx.writer.body == b'<span title="say &quot;hi&quot;">&lt;b&gt;</span>'

    def test_tag_odd_attrs(self) -> None:
        with pytest.raises(ValueError):
            _ctx().tag("div", lambda: None, "class")


class TestHeaders:
    @pytest.mark.parametrize(
        ("seconds", "expected"), [(0, "no-store"), (-5, "no-store"), (120, "max-age=120")]
    )
    def test_cache_time(self, seconds: int, expected: str) -> None:
        ctx = _ctx()
        ctx.cache_time(seconds)
        assert ctx.writer.headers.get("Cache-Control") == expected

    def test_set_download_filename(self) -> None:
        ctx = _ctx()
        ctx.set_download_filename("report 2024.csv")
        assert ctx.writer.headers.get("Content-Disposition") == (
            "attachment; filename=\"report+2024.csv\";filename*=utf-8''report+2024.csv"
        )

    def test_get_template_sets_last_modified(self, tmp_path) -> None:
        (tmp_path / "page.html").write_text("x")
        os.utime(tmp_path / "page.html", (0, 0))
        ctx = _ctx(app=App(AppConfig(template_dir=str(tmp_path))))

        cached = ctx.get_template("page.html")

        assert cached.source_path == os.path.join(str(tmp_path), "page.html")
        assert ctx.writer.headers.get("Last-Modified") == "Thu, 01 Jan 1970 00:00:00 GMT"


class TestSession:
    def test_session_started_lazily(self) -> None:
        ctx = _ctx()
        assert ctx.session_started is False
        session = ctx.session
        assert ctx.session_started is True
        assert ctx.session is session
