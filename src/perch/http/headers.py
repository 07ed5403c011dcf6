"""Case-insensitive, read-only request headers.

Built from the raw ASGI byte pairs. Names are folded to lower case
once, at construction.
"""

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Read-only, case-insensitive header mapping.

    ``headers["X-Name"]`` returns the first value; ``get_list`` returns
    every value sent under that name.
    """

    __slots__ = ("_raw", "_values")

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        values: dict[str, list[str]] = {}
        for name, value in raw:
            values.setdefault(name.decode("latin-1").lower(), []).append(value.decode("latin-1"))
        self._raw = raw
        self._values = values

    def __getitem__(self, key: str) -> str:
        return self._values[key.lower()][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def get_list(self, key: str) -> list[str]:
        return list(self._values.get(key.lower(), ()))

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        return self._raw
