"""Structural checks on a generated OpenAPI document."""

from .paths import path_parameters

HTTP_METHODS = ("get", "post", "put", "patch", "delete")


def validate_refs(spec: dict) -> dict[str, str]:
    """Check that every local ``$ref`` points at an existing component.

    Returns dict of {location: error_message} for dangling references.
    """
    errors = {}
    for location, ref in _refs(spec, "#"):
        if not ref.startswith("#/"):
            continue
        target = spec
        for part in ref[2:].split("/"):
            if not isinstance(target, dict) or part not in target:
                errors[location] = f"Unresolved reference {ref}"
                break
            target = target[part]
    return errors


def validate_path_parameters(spec: dict) -> dict[str, str]:
    """Check that every ``{placeholder}`` in a path has a matching path parameter.

    Returns dict of {location: error_message} for missing parameters.
    """
    errors = {}
    for path, operations in spec.get("paths", {}).items():
        expected = path_parameters(path)
        for method, operation in operations.items():
            if method not in HTTP_METHODS:
                continue
            declared = {p.get("name") for p in operation.get("parameters", []) if p.get("in") == "path"}
            missing = [name for name in expected if name not in declared]
            if missing:
                errors[f"{method.upper()} {path}"] = f"Missing path parameters: {', '.join(missing)}"
    return errors


def validate_document(spec: dict) -> dict[str, str]:
    """Run all checks. Returns combined {location: error_message} dict."""
    errors = {}
    errors.update(validate_refs(spec))
    errors.update(validate_path_parameters(spec))
    return errors


def _refs(node, location: str):
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            yield location, ref
        for key, value in node.items():
            yield from _refs(value, f"{location}/{key}")
    elif isinstance(node, list):
        for index, item in enumerate(node):
            yield from _refs(item, f"{location}/{index}")
