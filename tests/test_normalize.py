"""Tests for perch.server.normalize: trailing-slash stripping."""

from typing import Any

import pytest

from perch.server.normalize import normalize_path, strip_trailing_slash


class TestNormalizePath:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/", "/"),
            ("/foo", "/foo"),
            ("/foo/", "/foo"),
            ("/foo/bar/", "/foo/bar"),
            ("/foo//", "/foo//"),
            ("", ""),
        ],
    )
    def test_paths(self, path: str, expected: str) -> None:
        assert normalize_path(path) == expected


class TestStripTrailingSlash:
    @pytest.mark.asyncio
    async def test_rewrites_http_scope(self) -> None:
        seen: list[dict[str, Any]] = []

        async def app(scope, receive, send) -> None:
            seen.append(scope)

        original = {"type": "http", "path": "/foo/", "raw_path": b"/foo/"}
        await strip_trailing_slash(app)(original, None, None)

        assert seen[0]["path"] == "/foo"
        assert seen[0]["raw_path"] == b"/foo"
        assert original["path"] == "/foo/"

    @pytest.mark.asyncio
    async def test_root_untouched(self) -> None:
        seen: list[dict[str, Any]] = []

        async def app(scope, receive, send) -> None:
            seen.append(scope)

        scope = {"type": "http", "path": "/", "raw_path": b"/"}
        await strip_trailing_slash(app)(scope, None, None)

        assert seen[0] is scope

    @pytest.mark.asyncio
    async def test_lifespan_passes_through(self) -> None:
        seen: list[dict[str, Any]] = []

        async def app(scope, receive, send) -> None:
            seen.append(scope)

        scope = {"type": "lifespan"}
        await strip_trailing_slash(app)(scope, None, None)

        assert seen == [scope]
