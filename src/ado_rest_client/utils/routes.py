"""Route template expansion for server-declared locations.

Locations describe their path as a template such as
"{project}/_apis/build/builds/{buildId}". This module substitutes route
values into those templates and renders query parameters.

Rules:
    - {name} is replaced with the URL-encoded route value
    - {*name} is a wildcard: it matches the "name" route value and keeps "/"
    - A token without a value drops out, and empty path segments collapse,
      so optional trailing segments disappear
    - {{ and }} stand for literal braces
    - Route values the template does not consume become query parameters

Example:
    ```python
    from ado_rest_client.utils.routes import get_request_url

    get_request_url(
        "{project}/_apis/build/builds/{buildId}",
        area="build",
        resource_name="builds",
        route_values={"project": "Foo", "buildId": 42},
        query_params={"$top": 10, "statusFilter": None},
    )
    # "Foo/_apis/build/builds/42?%24top=10"
    ```
"""

import enum
import re
from datetime import datetime
from typing import Any
from urllib.parse import quote

IMPLICIT_ROUTE_VALUES = ("area", "resource")


def replace_route_values(route_template: str, route_values: dict[str, Any] | None) -> str:
    """Substitute route values into a template, dropping tokens that have no value."""
    path, _ = _expand(route_template, route_values or {})
    return path


def get_request_url(
    route_template: str,
    area: str,
    resource_name: str,
    route_values: dict[str, Any] | None = None,
    query_params: dict[str, Any] | None = None,
) -> str:
    """
    Build the relative request URL of a location.

    Args:
        route_template: Template declared by the location
        area: Location area, available to templates as {area}
        resource_name: Location resource, available to templates as {resource}
        route_values: Values for the template tokens
        query_params: Query string parameters, None values are skipped

    Returns:
        Relative URL with the query string appended.
    """
    values = dict(route_values or {})
    values.setdefault("area", area)
    values.setdefault("resource", resource_name)

    path, consumed = _expand(route_template, values)

    extra = {
        key: value
        for key, value in values.items()
        if key not in consumed and key not in IMPLICIT_ROUTE_VALUES
    }
    return path + query_params_to_string({**extra, **(query_params or {})})


def query_params_to_string(query_params: dict[str, Any] | None) -> str:
    """Render query parameters as "?a=1&b=2", or "" when nothing is left to send."""
    pairs: list[tuple[str, str]] = []
    for key, value in (query_params or {}).items():
        _flatten(quote(str(key), safe=""), value, pairs)
    if not pairs:
        return ""
    return "?" + "&".join(f"{key}={quote(value, safe='')}" for key, value in pairs)


def format_value(value: Any) -> str:
    """Format a route or query value the way the server parses it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple, set)):
        return ",".join(format_value(item) for item in value)
    return str(value)


def _flatten(prefix: str, value: Any, pairs: list[tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, dict):
        for key, item in value.items():
            _flatten(f"{prefix}.{quote(str(key), safe='')}", item, pairs)
        return
    pairs.append((prefix, format_value(value)))


def _lookup(route_values: dict[str, Any], name: str) -> tuple[str | None, Any]:
    """Find a token's value; wildcard names like "*path" match the bare name."""
    for key in (name, re.sub(r"[^A-Za-z0-9]", "", name)):
        value = route_values.get(key)
        if value is not None and value != "":
            return key, value
    return None, None


def _expand(route_template: str, route_values: dict[str, Any]) -> tuple[str, set[str]]:
    segments: list[str] = []
    consumed: set[str] = set()
    current = ""
    index = 0
    length = len(route_template)

    while index < length:
        char = route_template[index]
        if char == "{" and route_template.startswith("{{", index):
            current += "{"
            index += 2
            continue
        if char == "}" and route_template.startswith("}}", index):
            current += "}"
            index += 2
            continue
        if char == "{":
            end = route_template.find("}", index)
            if end == -1:
                current += route_template[index:]
                break
            name = route_template[index + 1 : end]
            key, value = _lookup(route_values, name)
            if key is not None:
                consumed.add(key)
                safe = "/" if name.startswith("*") else ""
                current += quote(format_value(value), safe=safe)
            index = end + 1
            continue
        if char == "/":
            if current:
                segments.append(current)
            current = ""
        else:
            current += char
        index += 1

    if current:
        segments.append(current)
    return "/".join(segments), consumed
