"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: takes one Request, returns a response value (sync or async)
Handler: TypeAlias = Callable[..., Any]
