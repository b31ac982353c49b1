"""URL templates derived from the App Router file layout."""

import re
from pathlib import Path

ROUTE_FILES = ("route.ts", "route.tsx")

PATH_PARAMETER = re.compile(r"{([^}]+)}")
_DYNAMIC_SEGMENT = re.compile(r"^\[{1,2}(?:\.\.\.)?([^\]]+)\]{1,2}$")


def is_route_file(path: Path) -> bool:
    return path.name in ROUTE_FILES


def route_path(file_path: Path, api_dir: Path) -> str:
    """``<api_dir>/orders/[id]/route.ts`` -> ``/orders/{id}``.

    Route groups ``(group)`` and parallel slots ``@slot`` do not appear in the URL.
    """
    relative = Path(file_path).parent.relative_to(api_dir)
    segments = []
    for segment in relative.parts:
        if segment.startswith("(") and segment.endswith(")"):
            continue
        if segment.startswith("@"):
            continue
        match = _DYNAMIC_SEGMENT.match(segment)
        segments.append("{" + match.group(1) + "}" if match else segment)
    return "/" + "/".join(segments)


def path_parameters(path: str) -> list[str]:
    return PATH_PARAMETER.findall(path)


def operation_id(path: str, method: str) -> str:
    """``("/orders/{id}", "get")`` -> ``get-orders-{id}``."""
    return f"{method}-{path.replace('/', '-').lstrip('-')}"


def default_tag(path: str) -> str:
    first = path.strip("/").split("/")[0]
    return first[:1].upper() + first[1:]


def example_value(name: str, schema: dict | None = None):
    """Example for a path parameter, guessed from its name."""
    if schema and schema.get("type") in ("number", "integer"):
        return 123
    if name == "id" or name.endswith("Id"):
        return 123
    if name == "slug":
        return "example-slug"
    return "example"
