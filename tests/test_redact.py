from __future__ import annotations

from pypetlibro._redact import mask_serial, redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "code": 0,
        "email": "owner@example.com",
        "password": "5ebe2294ecd0e0f08eab7690d2a6ee69",
        "appSn": "c35772530d1041699c87fe62348507a8",
        "data": {"token": "abc123", "refreshToken": "refresh-1", "deviceSn": "SN1"},
    }

    redacted = redact_for_log(payload)
    assert redacted["code"] == 0
    assert redacted["email"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["appSn"] == "<redacted>"
    assert redacted["data"]["token"] == "<redacted>"
    assert redacted["data"]["refreshToken"] == "<redacted>"
    assert redacted["data"]["deviceSn"] == "SN1"


def test_redact_for_log_walks_lists() -> None:
    redacted = redact_for_log([{"access_token": "x"}, "plain"])
    assert redacted == [{"access_token": "<redacted>"}, "plain"]


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_key_spelling_variants_share_one_rule() -> None:
    redacted = redact_for_log({"refresh_token": "r", "Access-Token": "a", "Authorization": "Bearer a"})
    assert set(redacted.values()) == {"<redacted>"}


def test_device_serials_are_shortened() -> None:
    redacted = redact_for_log({"deviceSn": "AF0300010D8A71B2", "data": [{"sn": "PLAF109ABCD"}]})
    assert redacted["deviceSn"] == "…71B2"
    assert redacted["data"] == [{"sn": "…ABCD"}]


def test_short_serials_and_numbers_pass_through() -> None:
    assert mask_serial("SN1") == "SN1"
    assert redact_for_log({"id": 42, "grainNum": 2}) == {"id": 42, "grainNum": 2}
