"""Annotation extractor: turns a handler's comment block into a DirectiveRecord."""

import re

from .base import DirectiveRecord

AUTH_SCHEMES = {
    "bearer": "BearerAuth",
    "basic": "BasicAuth",
    "apikey": "ApiKeyAuth",
}

TAG_LINE = re.compile(r"^@(\w+)\b\s*(.*)$")
RESPONSE_VALUE = re.compile(r"^(?:(\d{3}):)?(\w+)?(?::(.*))?")
TYPE_NAME = re.compile(r"^(\w+)")


def clean_comment(raw: str) -> list[str]:
    """Strip comment delimiters and leading asterisks, returning the text lines."""
    lines = []
    for line in raw.splitlines():
        line = line.strip()
        line = re.sub(r"^/\*+", "", line)
        line = re.sub(r"\*+/$", "", line)
        line = re.sub(r"^//+", "", line)
        line = re.sub(r"^\*+", "", line)
        lines.append(line.strip())
    return lines


def extract_directives(comment: str) -> DirectiveRecord:
    """Parse the ``@tag`` directives of a handler's leading comment block."""
    fields: dict = {"response_sets": [], "add_responses": []}

    for line in clean_comment(comment):
        if not line:
            continue
        match = TAG_LINE.match(line)
        if not match:
            if "summary" not in fields:
                fields["summary"] = line
            continue

        tag, value = match.group(1), match.group(2).strip()
        if tag == "openapi":
            fields["is_openapi"] = True
        elif tag == "deprecated":
            fields["deprecated"] = True
        elif tag in ("desc", "description"):
            fields["description"] = value
        elif tag == "tag":
            fields["tag"] = value
        elif tag == "auth":
            scheme = AUTH_SCHEMES.get(value.lower())
            if scheme:
                fields["auth"] = scheme
        elif tag == "params":
            fields["params_type"] = _type_name(value)
        elif tag == "pathParams":
            fields["path_params_type"] = _type_name(value)
        elif tag == "body":
            fields["body_type"] = _type_name(value)
        elif tag == "bodyDescription":
            fields["body_description"] = value
        elif tag == "contentType":
            fields["content_type"] = value
        elif tag == "response":
            _parse_response(value, fields)
        elif tag == "responseDescription":
            fields["response_description"] = value
        elif tag == "responseSet":
            fields["response_sets"] = [name.strip() for name in value.split(",") if name.strip()]
        elif tag == "add":
            fields["add_responses"] = _parse_additions(value)

    return DirectiveRecord(**fields)


def _type_name(value: str) -> str:
    match = TYPE_NAME.match(value)
    return match.group(1) if match else ""


def _parse_response(value: str, fields: dict) -> None:
    """``@response [<code>:]<TypeName>[:<description>]`` or a bare ``@response <code>``."""
    if re.fullmatch(r"\d{3}", value):
        fields["success_code"] = value
        return
    match = RESPONSE_VALUE.match(value)
    if not match:
        return
    code, type_name, description = match.groups()
    if code:
        fields["success_code"] = code
    if type_name:
        fields["response_type"] = type_name
    # an explicit @responseDescription wins over the inline one
    if description and description.strip() and not fields.get("response_description"):
        fields["response_description"] = description.strip()


def _parse_additions(value: str) -> list[tuple[str, str]]:
    """``@add 409:ConflictResponse,429`` -> [("409", "ConflictResponse"), ("429", "")]."""
    additions = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        code, _, schema = item.partition(":")
        additions.append((code.strip(), schema.strip()))
    return additions
