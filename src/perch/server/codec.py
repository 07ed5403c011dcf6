"""YAML codec for everything perch writes itself.

The route listing and error payloads share one format so a client can
parse any perch-generated body the same way.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import yaml

from perch.errors import SerializationError
from perch.routing.route import RouteView

YAML_CONTENT_TYPE = "text/vnd.yaml"


@dataclass(frozen=True, slots=True)
class ErrorPayload:
    """Body of a failed request: an HTTP status code and a description."""

    code: int
    message: str

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


def encode(data: Any) -> bytes:
    """Encode plain data (dicts, lists, scalars) as UTF-8 YAML.

    Raises ``SerializationError`` for anything ``yaml.safe_dump`` rejects.
    """
    try:
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    except yaml.YAMLError as exc:
        msg = f"cannot encode {data!r} as YAML: {exc}"
        raise SerializationError(msg) from exc
    return text.encode("utf-8")


def encode_error(payload: ErrorPayload) -> bytes:
    return encode(payload.as_dict())


def encode_routes(views: Sequence[RouteView]) -> bytes:
    return encode([view.as_dict() for view in views])


def decode(body: bytes | str) -> Any:
    """Parse a YAML body produced by ``encode``."""
    return yaml.safe_load(body)
