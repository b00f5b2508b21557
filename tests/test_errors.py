"""Tests for wren.errors and wren.server.errors: hierarchy and fallback responses."""

import logging

import pytest

from wren.errors import (
    BadRequest,
    ChainStalled,
    ConfigurationError,
    ContinuationError,
    HTTPError,
    MalformedRegistration,
    NotFound,
    PayloadTooLarge,
    ResponseAlreadySent,
    WrenError,
)
from wren.http.request import Request
from wren.http.response import Response
from wren.server.errors import error_status, send_default_error, send_not_found
from wren.server.terminal_errors import (
    format_compact_traceback,
    format_minimal_error,
    log_error,
)


def _raised(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as caught:
        return caught


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [ConfigurationError, HTTPError, ResponseAlreadySent, ContinuationError, ChainStalled],
    )
    def test_is_wren_error(self, cls: type) -> None:
        assert issubclass(cls, WrenError)

    def test_malformed_registration_is_configuration_error(self) -> None:
        assert issubclass(MalformedRegistration, ConfigurationError)

    @pytest.mark.parametrize("cls", [NotFound, BadRequest, PayloadTooLarge])
    def test_http_subclasses(self, cls: type) -> None:
        assert issubclass(cls, HTTPError)


class TestHTTPError:
    def test_str_with_detail(self) -> None:
        assert str(HTTPError(status=400, detail="Bad request body")) == "400: Bad request body"

    def test_str_without_detail(self) -> None:
        assert str(HTTPError(status=503)) == "503"

    def test_not_found(self) -> None:
        err = NotFound()
        assert err.status == 404
        assert err.detail == "Not Found"

    def test_bad_request(self) -> None:
        assert BadRequest("nope").status == 400

    def test_payload_too_large(self) -> None:
        err = PayloadTooLarge(10)
        assert err.status == 413
        assert "10 byte" in err.detail

    def test_chain_stalled_names_handler(self) -> None:
        err = ChainStalled("load_user")
        assert err.handler_name == "load_user"
        assert "load_user" in str(err)


class TestErrorStatus:
    def test_http_error(self) -> None:
        assert error_status(NotFound()) == 404

    def test_out_of_range_http_error(self) -> None:
        assert error_status(HTTPError(status=302)) == 500

    def test_other_values(self) -> None:
        assert error_status(ValueError()) == 500
        assert error_status("oops") == 500


class TestSendDefaultError:
    def test_plain_exception(self) -> None:
        res = Response()
        send_default_error(res, Request.build("GET", "/"), ValueError("secret"))
        assert res.status_code == 500
        assert res.text == "Internal Server Error"
        assert "secret" not in res.text
        assert res.get_header("content-type") == "text/plain; charset=utf-8"

    def test_http_error(self) -> None:
        res = Response()
        err = HTTPError(status=401, detail="Login required", headers=(("WWW-Authenticate", "Basic"),))
        send_default_error(res, Request.build("GET", "/"), err)
        assert res.status_code == 401
        assert res.text == "Login required"
        assert res.get_header("www-authenticate") == "Basic"

    def test_http_error_without_detail_uses_reason(self) -> None:
        res = Response()
        send_default_error(res, Request.build("GET", "/"), HTTPError(status=403))
        assert res.text == "Forbidden"

    def test_already_sent_is_left_alone(self) -> None:
        res = Response()
        res.send("partial")
        send_default_error(res, Request.build("GET", "/"), ValueError())
        assert res.text == "partial"

    def test_client_errors_are_not_logged_as_errors(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="wren.server"):
            send_default_error(Response(), Request.build("GET", "/x"), NotFound())
        assert all(r.levelno < logging.ERROR for r in caplog.records)


class TestSendNotFound:
    def test_message(self) -> None:
        res = Response()
        send_not_found(res, Request.build("POST", "/nope"))
        assert res.status_code == 404
        assert res.text == "Cannot POST /nope"

    def test_already_sent(self) -> None:
        res = Response()
        res.send("ok")
        send_not_found(res, Request.build("GET", "/"))
        assert res.status_code == 200


class TestTerminalErrors:
    def test_compact_traceback(self) -> None:
        text = format_compact_traceback(_raised(ValueError("bad input")))
        assert text.startswith("ValueError: bad input")
        assert "_raised" in text

    def test_minimal(self) -> None:
        text = format_minimal_error(_raised(KeyError("k")))
        assert text.startswith("KeyError at ")
        assert "\n" not in text

    def test_unraised_exception(self) -> None:
        assert format_compact_traceback(ValueError("x")) == "ValueError: x"
        assert format_minimal_error(ValueError("x")) == "ValueError: x"

    def test_log_error_default_style(
        self, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("WREN_TRACEBACK", raising=False)
        with caplog.at_level(logging.ERROR, logger="wren.server"):
            log_error(_raised(RuntimeError("boom")), Request.build("GET", "/users"))
        (record,) = caplog.records
        assert record.getMessage().startswith("500 GET /users\nRuntimeError: boom")
        assert record.exc_info is None

    def test_log_error_full_style(
        self, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("WREN_TRACEBACK", "full")
        with caplog.at_level(logging.ERROR, logger="wren.server"):
            log_error(_raised(RuntimeError("boom")))
        (record,) = caplog.records
        assert record.exc_info is not None

    def test_log_error_minimal_style(
        self, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("WREN_TRACEBACK", "minimal")
        with caplog.at_level(logging.ERROR, logger="wren.server"):
            log_error(_raised(RuntimeError("boom")), status=503)
        (record,) = caplog.records
        assert record.getMessage().startswith("503 - RuntimeError at ")

    def test_log_error_non_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="wren.server"):
            log_error("not an exception")
        assert "'not an exception'" in caplog.text
