"""Path parameter converters.

Regex patterns for route path segments like ``{id:int}``. Captured
values are handed to handlers as strings on ``request.path_params``.
"""

CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "int": r"\d+",
    "float": r"\d+(?:\.\d+)?",
    "path": r".+",
}
