"""Tests for perch.server.sender response emission rules."""

from typing import Any

import pytest

from perch.http.response import Response
from perch.server.sender import send_response


async def _emit(response: Response, method: str = "GET") -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        messages.append(message)

    await send_response(response, send, method=method)
    return messages


class TestSendResponse:
    @pytest.mark.asyncio
    async def test_200_preserves_body(self) -> None:
        messages = await _emit(Response("ok"))

        assert messages[0]["type"] == "http.response.start"
        headers = dict(messages[0]["headers"])
        assert headers[b"content-length"] == b"2"
        assert headers[b"content-type"] == b"text/plain; charset=utf-8"
        assert messages[1] == {"type": "http.response.body", "body": b"ok"}

    @pytest.mark.asyncio
    async def test_204_drops_body(self) -> None:
        messages = await _emit(Response("unexpected").with_status(204))

        assert b"content-length" not in dict(messages[0]["headers"])
        assert messages[1]["body"] == b""

    @pytest.mark.asyncio
    async def test_head_keeps_length_drops_body(self) -> None:
        messages = await _emit(Response("pong"), method="HEAD")

        assert dict(messages[0]["headers"])[b"content-length"] == b"4"
        assert messages[1]["body"] == b""

    @pytest.mark.asyncio
    async def test_header_names_lowercased(self) -> None:
        messages = await _emit(Response().with_header("Allow", "GET"))

        assert (b"allow", b"GET") in messages[0]["headers"]
