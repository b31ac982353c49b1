"""Specification assembler.

Runs the route collector over the API directory and merges its paths, the
named schemas of the resolution session and the configured response
boilerplate into the base document from the configuration file.
"""

import json
import logging
from pathlib import Path

import yaml

from ..config import GeneratorConfig, strip_internal
from ..schema.resolver import build_resolvers
from ..schema.session import ResolutionSession
from .responses import RESPONSE_REF_PREFIX, error_responses, reason_phrase
from .routes import RouteCollector

logger = logging.getLogger(__name__)

SECURITY_SCHEMES = {
    "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
    "BasicAuth": {"type": "http", "scheme": "basic"},
    "ApiKeyAuth": {"type": "apiKey", "in": "header", "name": "X-API-Key"},
}


class OpenApiGenerator:
    def __init__(self, config: GeneratorConfig, session: ResolutionSession | None = None):
        self.config = config
        self.session = session or ResolutionSession()
        self.resolvers = build_resolvers(
            self.session,
            schema_dir=config.schema_dir,
            api_dir=config.api_dir,
            schema_type=config.schema_type,
        )
        self.collector = RouteCollector(
            config.api_dir,
            self.resolvers,
            self.session,
            include_openapi_routes=config.include_openapi_routes,
            default_response_set=config.default_response_set,
            response_sets={name: [str(code) for code in codes] for name, codes in config.response_sets.items()},
            base_path=config.base_path,
        )

    def generate(self) -> dict:
        """Build the complete OpenAPI document."""
        logger.debug("Scanning routes in %s", self.config.api_dir)
        self.collector.scan()

        spec = strip_internal(self.config.document)
        spec.setdefault("openapi", "3.0.0")
        spec.setdefault("info", {"title": "API Documentation", "version": "1.0.0"})
        spec["paths"] = self.collector.sorted_paths()

        components = spec.setdefault("components", {})
        schemas = components.setdefault("schemas", {})
        for name in sorted(self.session.schemas):
            schemas.setdefault(name, self.session.schemas[name].to_openapi())
        if not schemas:
            del components["schemas"]

        responses = components.setdefault("responses", {})
        for key, response in error_responses(self.config.error_config).items():
            responses.setdefault(key, response)
        for name in sorted(_referenced(spec["paths"], RESPONSE_REF_PREFIX)):
            if name not in responses:
                responses[name] = {"description": reason_phrase(name)}
        if not responses:
            del components["responses"]

        self._add_security_schemes(spec, components)
        if not components:
            del spec["components"]
        return spec

    def _add_security_schemes(self, spec: dict, components: dict) -> None:
        used = set()
        for operations in spec["paths"].values():
            for operation in operations.values():
                for requirement in operation.get("security", []):
                    used.update(requirement)
        if not used:
            return
        schemes = components.setdefault("securitySchemes", {})
        for name in sorted(used):
            if name not in schemes and name in SECURITY_SCHEMES:
                schemes[name] = dict(SECURITY_SCHEMES[name])


def _referenced(node, prefix: str) -> set[str]:
    """Names of every ``$ref`` below ``node`` that starts with ``prefix``."""
    found = set()
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith(prefix):
            found.add(ref[len(prefix):])
        for value in node.values():
            found |= _referenced(value, prefix)
    elif isinstance(node, list):
        for item in node:
            found |= _referenced(item, prefix)
    return found


def render_document(spec: dict, output: Path) -> str:
    """Serialize as YAML for ``.yaml``/``.yml`` outputs, JSON otherwise."""
    if Path(output).suffix in (".yaml", ".yml"):
        return yaml.safe_dump(spec, sort_keys=False, allow_unicode=True)
    return json.dumps(spec, indent=2, ensure_ascii=False) + "\n"
