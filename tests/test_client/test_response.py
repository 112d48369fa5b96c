"""Tests for response decoding helpers."""

from __future__ import annotations

import httpx
import pytest

from difysync.client.response import extract_error_message, extract_response_data


class TestExtractErrorMessage:
    @pytest.mark.parametrize(
        ("response", "expected"),
        [
            (httpx.Response(400, json={"message": "m", "error": "e"}), "m"),
            (httpx.Response(400, json={"error": "e"}), "e"),
            (httpx.Response(400, text='{"code": "x"}'), '{"code": "x"}'),
            (httpx.Response(500, text="Internal"), "Internal"),
            (httpx.Response(500, text='["a"]'), '["a"]'),
        ],
    )
    def test_message_preference(self, response: httpx.Response, expected: str) -> None:
        assert extract_error_message(response) == expected


class TestExtractResponseData:
    def test_json(self) -> None:
        assert extract_response_data(httpx.Response(200, json={"a": 1})) == {"a": 1}

    def test_text(self) -> None:
        response = httpx.Response(200, text="plain", headers={"content-type": "text/plain"})
        assert extract_response_data(response) == "plain"

    def test_empty_body(self) -> None:
        assert extract_response_data(httpx.Response(204)) is None
