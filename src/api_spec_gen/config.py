"""Generator configuration: the ``next.openapi.json`` document.

The same document is both the tool's settings and the base template of the
emitted OpenAPI document; :data:`INTERNAL_KEYS` are removed before output.
"""

import copy
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONFIG_FILENAME = "next.openapi.json"

INTERNAL_KEYS = (
    "apiDir",
    "schemaDir",
    "docsUrl",
    "ui",
    "outputFile",
    "outputDir",
    "includeOpenApiRoutes",
    "schemaType",
    "defaultResponseSet",
    "responseSets",
    "errorConfig",
    "basePath",
    "debug",
)

DEFAULT_TEMPLATE = {
    "openapi": "3.0.0",
    "info": {
        "title": "API Documentation",
        "version": "1.0.0",
        "description": "This is the OpenAPI specification for your project.",
    },
    "servers": [{"url": "http://localhost:3000", "description": "Local development server"}],
    "components": {
        "securitySchemes": {
            "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
        }
    },
    "defaultResponseSet": "common",
    "responseSets": {
        "common": ["400", "500"],
        "auth": ["400", "401", "403", "500"],
        "public": ["400", "500"],
    },
    "errorConfig": {
        "template": {
            "type": "object",
            "properties": {
                "error": {"type": "string", "example": "{{ERROR_MESSAGE}}"},
                "code": {"type": "string", "example": "{{ERROR_CODE}}"},
            },
        },
        "codes": {
            "400": {"description": "Bad Request", "variables": {"ERROR_MESSAGE": "Invalid request parameters"}},
            "401": {"description": "Unauthorized", "variables": {"ERROR_MESSAGE": "Authentication required"}},
            "403": {"description": "Forbidden", "variables": {"ERROR_MESSAGE": "Access denied"}},
            "404": {"description": "Not Found", "variables": {"ERROR_MESSAGE": "Resource not found"}},
            "500": {"description": "Internal Server Error", "variables": {"ERROR_MESSAGE": "Something went wrong"}},
        },
    },
    "apiDir": "./src/app/api",
    "schemaDir": "./src",
    "schemaType": "typescript",
    "docsUrl": "api-docs",
    "ui": "scalar",
    "outputFile": "openapi.json",
    "outputDir": "./public",
    "includeOpenApiRoutes": False,
    "debug": False,
}


class ConfigError(Exception):
    """Raised when the configuration document is missing or invalid."""


class ErrorCode(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: str = ""
    http_status: int | None = Field(None, alias="httpStatus")
    variables: dict[str, Any] = {}


class ErrorConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    template: dict | None = None
    codes: dict[str, ErrorCode] = {}
    variables: dict[str, Any] = {}


class GeneratorConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api_dir: Path = Field(Path("./src/app/api"), alias="apiDir")
    schema_dir: Path = Field(Path("./src"), alias="schemaDir")
    docs_url: str = Field("api-docs", alias="docsUrl")
    ui: str = "scalar"
    output_file: str = Field("openapi.json", alias="outputFile")
    output_dir: Path = Field(Path("./public"), alias="outputDir")
    include_openapi_routes: bool = Field(False, alias="includeOpenApiRoutes")
    schema_type: Literal["typescript", "zod"] = Field("typescript", alias="schemaType")
    default_response_set: str | None = Field(None, alias="defaultResponseSet")
    response_sets: dict[str, list[str | int]] = Field({}, alias="responseSets")
    error_config: ErrorConfig | None = Field(None, alias="errorConfig")
    base_path: str = Field("", alias="basePath")
    debug: bool = False
    document: dict = {}

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.output_file


def load_config(path: Path) -> GeneratorConfig:
    """Load a JSON or YAML configuration document.

    Relative directories are resolved against the directory holding the file.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    if not isinstance(document, dict):
        raise ConfigError(f"{path} must contain a JSON object")

    try:
        config = GeneratorConfig.model_validate({**document, "document": document})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e

    base = path.resolve().parent
    return config.model_copy(
        update={
            "api_dir": base / config.api_dir,
            "schema_dir": base / config.schema_dir,
            "output_dir": base / config.output_dir,
        }
    )


def strip_internal(document: dict) -> dict:
    """Deep copy of ``document`` without the tool's own settings."""
    return {key: copy.deepcopy(value) for key, value in document.items() if key not in INTERNAL_KEYS}


def build_template(ui: str | None = None, docs_url: str | None = None, schema_type: str | None = None) -> dict:
    """Starter configuration document, as written by ``init``."""
    template = copy.deepcopy(DEFAULT_TEMPLATE)
    if ui:
        template["ui"] = ui
    if docs_url:
        template["docsUrl"] = docs_url
    if schema_type:
        template["schemaType"] = schema_type
    return template
