"""Tests for mortar.http.writer: ResponseWriter and ErrorInterceptingWriter."""

import logging

import pytest

from mortar.http.writer import ErrorInterceptingWriter, ResponseWriter


class TestResponseWriter:
    def test_defaults(self) -> None:
        writer = ResponseWriter()
        assert writer.status == 200
        assert writer.written is False
        assert writer.body == b""

    def test_write_implies_200(self) -> None:
        writer = ResponseWriter()
        assert writer.write("hello") == 5
        assert writer.written is True
        assert writer.status == 200

    def test_first_status_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        writer = ResponseWriter()
        writer.write_header(404)
        with caplog.at_level(logging.WARNING, logger="mortar.http"):
            writer.write_header(500)
        assert writer.status == 404
        assert "superfluous" in caplog.text

    def test_status_after_write_ignored(self) -> None:
        writer = ResponseWriter()
        writer.write(b"partial")
        writer.write_header(500)
        assert writer.status == 200

    def test_to_response_defaults_content_type(self) -> None:
        writer = ResponseWriter()
        writer.write("<p>x</p>")
        response = writer.to_response()
        assert response.content_type == "text/html; charset=utf-8"
        assert response.text == "<p>x</p>"

    def test_to_response_keeps_explicit_content_type(self) -> None:
        writer = ResponseWriter()
        writer.headers.set("Content-Type", "text/css")
        writer.write("body{}")
        assert writer.to_response().content_type == "text/css"

    def test_empty_body_has_no_content_type(self) -> None:
        writer = ResponseWriter()
        writer.write_header(204)
        assert writer.to_response().content_type is None


class TestErrorInterceptingWriter:
    def test_success_passes_through(self) -> None:
        inner = ResponseWriter()
        wrapper = ErrorInterceptingWriter(inner)
        wrapper.write_header(200)
        wrapper.write("file contents")
        assert wrapper.error_status == 0
        assert inner.status == 200
        assert inner.body == b"file contents"

    def test_error_status_not_forwarded(self) -> None:
        inner = ResponseWriter()
        wrapper = ErrorInterceptingWriter(inner)
        wrapper.write_header(404)
        assert wrapper.error_status == 404
        assert inner.written is False

    def test_error_body_buffered(self) -> None:
        inner = ResponseWriter()
        wrapper = ErrorInterceptingWriter(inner)
        wrapper.write_header(404)
        wrapper.write("404 page not found\n")
        assert wrapper.error_message == "404 page not found\n"
        assert inner.body == b""

    def test_headers_shared(self) -> None:
        inner = ResponseWriter()
        wrapper = ErrorInterceptingWriter(inner)
        wrapper.headers.set("X-Test", "1")
        assert inner.headers.get("x-test") == "1"

    def test_redirect_forwarded(self) -> None:
        inner = ResponseWriter()
        wrapper = ErrorInterceptingWriter(inner)
        wrapper.write_header(301)
        assert inner.status == 301
        assert wrapper.error_status == 0
