"""Tests for perch.http.headers and perch.http.query."""

import pytest

from perch.http.headers import Headers
from perch.http.query import QueryParams


def _h(*pairs: tuple[str, str]) -> Headers:
    """Shorthand: build Headers from string pairs."""
    raw = tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs)
    return Headers(raw)


class TestHeaders:
    def test_case_insensitive(self) -> None:
        h = _h(("Content-Type", "text/vnd.yaml"))
        assert h["content-type"] == "text/vnd.yaml"
        assert h["CONTENT-TYPE"] == "text/vnd.yaml"

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            _h(("Accept", "*/*"))["X-Missing"]

    def test_contains_rejects_non_str(self) -> None:
        h = _h(("Accept", "*/*"))
        assert "accept" in h
        assert 42 not in h  # type: ignore[operator]

    def test_repeated_names(self) -> None:
        h = _h(("X-Tag", "a"), ("x-tag", "b"))
        assert h["X-Tag"] == "a"
        assert h.get_list("X-TAG") == ["a", "b"]
        assert len(h) == 1

    def test_get_default(self) -> None:
        assert _h().get("x-missing", "fallback") == "fallback"


class TestQueryParams:
    def test_first_value(self) -> None:
        q = QueryParams(b"a=1&a=2&b=x")
        assert q["a"] == "1"
        assert q.get_list("a") == ["1", "2"]

    def test_blank_values_kept(self) -> None:
        q = QueryParams(b"flag=&other=1")
        assert q["flag"] == ""

    def test_empty(self) -> None:
        q = QueryParams()
        assert len(q) == 0
        assert q.get_list("a") == []
        assert q.raw == b""
