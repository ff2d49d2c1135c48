from __future__ import annotations

from pyrtls._redact import redact_for_log, redact_url


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "type": "SUBSCRIBE",
        "apiKey": "secret-key",
        "nested": {"token": "jwt", "Authorization": "Bearer x"},
        "items": [{"password": "pw", "lat": 1.5}],
    }

    redacted = redact_for_log(payload)
    assert redacted["type"] == "SUBSCRIBE"
    assert redacted["apiKey"] == "<redacted>"
    assert redacted["nested"]["token"] == "<redacted>"
    assert redacted["nested"]["Authorization"] == "<redacted>"
    assert redacted["items"][0] == {"password": "<redacted>", "lat": 1.5}


def test_redact_for_log_truncates_long_strings() -> None:
    redacted = redact_for_log({"value": "x" * 600}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_summarizes_bytes() -> None:
    assert redact_for_log(b"\x00\x01") == "<bytes:2b>"


def test_redact_url_hides_credentials() -> None:
    url = "wss://rtls.example.com/ws?apiKey=secret&namespace=ns&token=jwt"
    redacted = redact_url(url)
    assert "secret" not in redacted
    assert "jwt" not in redacted
    assert "namespace=ns" in redacted


def test_redact_url_without_query_is_unchanged() -> None:
    assert redact_url("wss://rtls.example.com/ws") == "wss://rtls.example.com/ws"


def test_redact_for_log_summarizes_bytearray() -> None:
    assert redact_for_log({"blob": bytearray(b"abc")}) == {"blob": "<bytes:3b>"}


def test_redact_for_log_passes_scalars_through() -> None:
    assert redact_for_log({"lat": 1.5, "ok": True, "n": None}) == {"lat": 1.5, "ok": True, "n": None}
