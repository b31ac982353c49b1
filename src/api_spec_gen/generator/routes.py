"""Route collector: one RouteDefinition per exported HTTP handler."""

import logging
from pathlib import Path

from ..parser.annotations import extract_directives
from ..parser.base import DirectiveRecord, Parameter, RouteDefinition
from ..schema.model import Schema, SchemaKind
from ..schema.resolver import ResolverChain
from ..schema.session import ResolutionSession
from .paths import default_tag, example_value, is_route_file, operation_id, path_parameters, route_path
from .responses import expand_response_sets, reason_phrase, response_ref, set_entry, success_code

logger = logging.getLogger(__name__)

MUTATING_METHODS = ("post", "put", "patch")
MULTIPART_HINTS = ("formdata", "fileupload", "multipart")
JSON = "application/json"
MULTIPART = "multipart/form-data"


class RouteCollector:
    def __init__(
        self,
        api_dir: Path,
        resolvers: ResolverChain,
        session: ResolutionSession,
        include_openapi_routes: bool = False,
        default_response_set: str | None = None,
        response_sets: dict[str, list[str]] | None = None,
        base_path: str = "",
    ):
        self.api_dir = Path(api_dir)
        self.resolvers = resolvers
        self.session = session
        self.include_openapi_routes = include_openapi_routes
        self.default_response_set = default_response_set
        self.response_sets = response_sets or {}
        self.base_path = base_path.rstrip("/")
        self.routes: dict[str, dict[str, RouteDefinition]] = {}
        self._processed: set[Path] = set()

    def scan(self, directory: Path | None = None) -> None:
        for path in self.session.walk(directory or self.api_dir):
            if is_route_file(path):
                self.process_file(path)

    def process_file(self, path: Path) -> None:
        if path in self._processed:
            return
        self._processed.add(path)
        source = self.session.source(path)
        if source is None:
            return
        for handler in source.handlers:
            directives = extract_directives(handler.comment)
            if self.include_openapi_routes and not directives.is_openapi:
                logger.debug("Skipping %s in %s:%d, no @openapi tag", handler.name, path, handler.line)
                continue
            route = self.build_route(handler.name.lower(), route_path(path, self.api_dir), directives)
            self.routes.setdefault(route.path, {})[route.method] = route

    def build_route(self, method: str, path: str, directives: DirectiveRecord) -> RouteDefinition:
        tag = directives.tag or default_tag(path)
        path = self.base_path + path if self.base_path else path
        placeholders = path_parameters(path)
        if placeholders and not directives.path_params_type:
            logger.debug("%s %s has path parameters but no @pathParams type", method.upper(), path)

        return RouteDefinition(
            method=method,
            path=path,
            operation_id=operation_id(path, method),
            summary=directives.summary,
            description=directives.description,
            tags=[tag],
            security=[{directives.auth: []}] if directives.auth else None,
            parameters=self._parameters(placeholders, directives),
            request_body=self._request_body(method, directives),
            responses=self._responses(method, directives),
            deprecated=directives.deprecated,
        )

    def sorted_paths(self) -> dict[str, dict]:
        """Paths ordered by first tag, then by segment count."""

        def sort_key(path: str):
            operations = list(self.routes[path].values())
            tag = operations[0].tags[0] if operations and operations[0].tags else ""
            return (tag, len(path.split("/")))

        return {
            path: {method: route.to_openapi() for method, route in self.routes[path].items()}
            for path in sorted(self.routes, key=sort_key)
        }

    # --- parameters ---------------------------------------------------------

    def _parameters(self, placeholders: list[str], directives: DirectiveRecord) -> list[Parameter]:
        parameters = []
        declared = set()
        if directives.path_params_type:
            for parameter in self._declared(directives.path_params_type, "path"):
                declared.add(parameter.name)
                parameters.append(parameter)
        for name in placeholders:
            if name not in declared:
                schema = {"type": "number"} if name == "id" or name.endswith("Id") else {"type": "string"}
                parameters.append(
                    Parameter(
                        name=name,
                        location="path",
                        required=True,
                        param_schema=schema,
                        example=example_value(name, schema),
                    )
                )
        if directives.params_type:
            parameters.extend(self._declared(directives.params_type, "query"))
        return parameters

    def _declared(self, type_name: str, location: str) -> list[Parameter]:
        schema = self.session.deref(self.resolvers.resolve(type_name))
        if schema is None or schema.kind != SchemaKind.OBJECT:
            logger.debug("Parameter type %s is not an object", type_name)
            return []
        parameters = []
        for name, prop in schema.properties.items():
            prop_schema = self._parameter_schema(prop)
            description = prop_schema.pop("description", "") or ""
            parameters.append(
                Parameter(
                    name=name,
                    location=location,
                    required=True if location == "path" else name in schema.required,
                    param_schema=prop_schema,
                    description=description,
                    example=example_value(name, prop_schema) if location == "path" else None,
                )
            )
        return parameters

    def _parameter_schema(self, prop: Schema) -> dict:
        data = prop.to_openapi()
        if prop.kind == SchemaKind.REFERENCE and prop.description:
            # parameters carry the description themselves; a bare $ref is enough
            data = Schema.reference(prop.ref).to_openapi()
            data["description"] = prop.description
        return data

    # --- request body -------------------------------------------------------

    def _request_body(self, method: str, directives: DirectiveRecord) -> dict | None:
        if method not in MUTATING_METHODS or not directives.body_type:
            return None
        schema = self.resolvers.resolve(directives.body_type)
        content_type = directives.content_type or _infer_content_type(directives.body_type)
        if content_type == MULTIPART:
            body_schema = _binary_files(self.session.deref(schema) or schema).to_openapi()
        else:
            body_schema = self.resolvers.reference_or_inline(schema)

        body = {"content": {content_type: {"schema": body_schema}}}
        if directives.body_description:
            body["description"] = directives.body_description
        return body

    # --- responses ----------------------------------------------------------

    def _responses(self, method: str, directives: DirectiveRecord) -> dict[str, dict]:
        responses: dict[str, dict] = {}

        if directives.response_type or directives.success_code or method == "delete":
            code = success_code(method, directives.success_code)
            responses[code] = self._success(directives)

        set_names = directives.response_sets or ([self.default_response_set] if self.default_response_set else [])
        for entry in expand_response_sets(set_names, self.response_sets):
            code, ref = set_entry(entry)
            responses.setdefault(code, ref)

        for code, schema_name in directives.add_responses:
            if schema_name:
                schema = self.resolvers.resolve(schema_name)
                responses[code] = {
                    "description": reason_phrase(code),
                    "content": {JSON: {"schema": self.resolvers.reference_or_inline(schema)}},
                }
            else:
                responses[code] = response_ref(code)

        if not responses:
            responses["200"] = self._success(directives)
        return responses

    def _success(self, directives: DirectiveRecord) -> dict:
        response = {"description": directives.response_description or "Successful response"}
        if directives.response_type:
            schema = self.resolvers.resolve(directives.response_type)
            response["content"] = {JSON: {"schema": self.resolvers.reference_or_inline(schema)}}
        return response


def _infer_content_type(type_name: str) -> str:
    lowered = type_name.lower()
    return MULTIPART if any(hint in lowered for hint in MULTIPART_HINTS) else JSON


def _binary_files(schema: Schema) -> Schema:
    """Rewrite file-shaped properties of a multipart body to binary strings."""
    if schema.kind != SchemaKind.OBJECT:
        return schema
    properties = {}
    for name, prop in schema.properties.items():
        if _is_file(prop, name):
            prop = Schema.binary().model_copy(update={"description": prop.description})
        elif prop.kind == SchemaKind.ARRAY and prop.items is not None and _is_file(prop.items, name):
            prop = prop.model_copy(update={"items": Schema.binary()})
        properties[name] = prop
    return schema.model_copy(update={"properties": properties})


def _is_file(schema: Schema, name: str) -> bool:
    if schema.format == "binary":
        return True
    if schema.kind == SchemaKind.REFERENCE and schema.ref in ("File", "Blob"):
        return True
    # z.any() / z.custom() file fields
    untyped = schema.kind == SchemaKind.ANY or schema.is_untyped()
    return untyped and "file" in name.lower()
