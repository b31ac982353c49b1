"""Response boilerplate: success codes, response sets and error templates."""

import copy
import logging
import re
from http import HTTPStatus

logger = logging.getLogger(__name__)

RESPONSE_REF_PREFIX = "#/components/responses/"

SUCCESS_CODES = {"post": "201", "delete": "204"}

_PLACEHOLDER = re.compile(r"{{\s*(\w+)\s*}}")


def reason_phrase(code: str) -> str:
    try:
        return HTTPStatus(int(code)).phrase
    except ValueError:
        return f"Response {code}"


def success_code(method: str, explicit: str = "") -> str:
    return explicit or SUCCESS_CODES.get(method, "200")


def response_ref(name: str) -> dict:
    return {"$ref": RESPONSE_REF_PREFIX + name}


def expand_response_sets(set_names: list[str], response_sets: dict[str, list[str]]) -> list[str]:
    """Flatten named response sets into their ordered entries.

    ``none`` disables sets entirely; an unknown set name is skipped with a warning.
    """
    entries = []
    for name in set_names:
        if name == "none":
            return []
        if name not in response_sets:
            logger.warning("Unknown response set '%s'", name)
            continue
        for entry in response_sets[name]:
            if str(entry) not in entries:
                entries.append(str(entry))
    return entries


def set_entry(entry: str) -> tuple[str, dict]:
    """``"401"`` -> ref to ``401``; ``"409:Conflict"`` -> status 409, ref to ``Conflict``."""
    code, _, name = entry.partition(":")
    code = code.strip()
    return code, response_ref(name.strip() or code)


def substitute(template, variables: dict):
    """Deep copy of ``template`` with ``{{NAME}}`` placeholders filled in.

    A string that is exactly one placeholder takes the variable's value as is,
    so numbers and booleans keep their type.
    """
    if isinstance(template, dict):
        return {key: substitute(value, variables) for key, value in template.items()}
    if isinstance(template, list):
        return [substitute(item, variables) for item in template]
    if not isinstance(template, str):
        return copy.deepcopy(template)

    whole = _PLACEHOLDER.fullmatch(template.strip())
    if whole and whole.group(1) in variables:
        return copy.deepcopy(variables[whole.group(1)])
    return _PLACEHOLDER.sub(
        lambda m: str(variables[m.group(1)]) if m.group(1) in variables else m.group(0),
        template,
    )


def error_responses(error_config) -> dict[str, dict]:
    """One ``components.responses`` entry per configured error code."""
    if error_config is None or not error_config.template:
        return {}
    responses = {}
    for key, code in error_config.codes.items():
        status = code.http_status or _status_of(key)
        variables = {
            "ERROR_CODE": key,
            "DESCRIPTION": code.description or reason_phrase(str(status)),
            "HTTP_STATUS": status,
        }
        variables.update(error_config.variables)
        variables.update(code.variables)
        responses[key] = {
            "description": variables["DESCRIPTION"],
            "content": {"application/json": {"schema": substitute(error_config.template, variables)}},
        }
    return responses


def _status_of(key: str) -> int | str:
    return int(key) if key.isdigit() else key
