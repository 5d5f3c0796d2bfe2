"""
Unit tests for anti-forgery state helpers and URL utilities.

Coverage:
* state generation and exact, masked validation
* query / fragment parameter extraction
* token-request body layout
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qsl

import pytest

from spa_oidc.flows.config import OpenIdConfiguration
from spa_oidc.flows.state import generate_state, validate_state_from_callback
from spa_oidc.flows.url import (
    create_body_for_code_flow_code_request,
    create_body_for_refresh_token_request,
    get_url_parameter,
)

CONFIG = OpenIdConfiguration(
    config_id="a",
    authority="https://idp.example.test",
    client_id="spa client",
    redirect_url="https://app.example.test/cb",
)


# --------------------------------------------------------------------------- #
# state                                                                       #
# --------------------------------------------------------------------------- #
def test_generated_states_are_random_and_url_safe() -> None:
    first, second = generate_state(), generate_state()
    assert first != second
    assert len(first) >= 43
    assert set(first) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


def test_validate_state_exact_match() -> None:
    assert validate_state_from_callback("abc123", "abc123") is True
    assert validate_state_from_callback("ABC123", "abc123") is False
    assert validate_state_from_callback(None, "abc123") is False
    assert validate_state_from_callback("abc123", None) is False


def test_validate_state_logs_masked_values(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="spa-oidc.flows.state"):
        validate_state_from_callback("forged-state-value", "stored-state-value")

    assert "forg****" in caplog.text
    assert "stor****" in caplog.text
    assert "forged-state-value" not in caplog.text


# --------------------------------------------------------------------------- #
# url parameters                                                              #
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://app/cb?code=q1&state=s", "q1"),
        ("https://app/cb#code=f1&state=s", "f1"),
        ("https://app/cb?code=q1#code=f1", "q1"),
        ("https://app/cb?code=&state=s", None),
        ("https://app/cb?state=s", None),
        ("", None),
    ],
)
def test_get_url_parameter(url: str, expected: str | None) -> None:
    assert get_url_parameter(url, "code") == expected


def test_get_url_parameter_decodes_values() -> None:
    assert get_url_parameter("https://app/cb?state=a%2Bb%3D", "state") == "a+b="


# --------------------------------------------------------------------------- #
# request bodies                                                              #
# --------------------------------------------------------------------------- #
def test_code_request_body_without_verifier() -> None:
    body = create_body_for_code_flow_code_request("the code", CONFIG, custom_params={"flag": False, "n": 2})

    assert parse_qsl(body) == [
        ("grant_type", "authorization_code"),
        ("client_id", "spa client"),
        ("code", "the code"),
        ("flag", "false"),
        ("n", "2"),
        ("redirect_uri", "https://app.example.test/cb"),
    ]


def test_refresh_request_body() -> None:
    body = create_body_for_refresh_token_request("rt", CONFIG, custom_params={"scope": "openid"})

    assert parse_qsl(body) == [
        ("grant_type", "refresh_token"),
        ("client_id", "spa client"),
        ("refresh_token", "rt"),
        ("scope", "openid"),
    ]
