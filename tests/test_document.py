import json
from pathlib import Path

import yaml

from api_spec_gen.config import load_config
from api_spec_gen.generator.document import OpenApiGenerator, render_document

FIXTURES = Path(__file__).parent / "fixtures"


def _generate(project: str) -> dict:
    return OpenApiGenerator(load_config(FIXTURES / project / "next.openapi.json")).generate()


class TestTypeScriptProject:
    def test_internal_keys_are_removed(self):
        spec = _generate("ts_project")
        assert spec["info"] == {"title": "Orders API", "version": "1.0.0"}
        assert spec["servers"] == [{"url": "http://localhost:3000"}]
        for key in ("apiDir", "schemaDir", "responseSets", "errorConfig", "outputFile"):
            assert key not in spec

    def test_named_schemas_are_sorted(self):
        schemas = _generate("ts_project")["components"]["schemas"]
        assert list(schemas) == sorted(schemas)
        assert {"Order", "OrderItem", "OrderList", "OrderStatus", "Comment", "CommentBody", "CreateOrderBody"} <= set(schemas)

    def test_recursive_schema(self):
        comment = _generate("ts_project")["components"]["schemas"]["Comment"]
        assert comment["properties"]["replies"] == {"type": "array", "items": {"$ref": "#/components/schemas/Comment"}}

    def test_error_responses_from_template(self):
        responses = _generate("ts_project")["components"]["responses"]
        assert responses["401"] == {
            "description": "Unauthorized",
            "content": {
                "application/json": {
                    "schema": {
                        "type": "object",
                        "properties": {
                            "error": {"type": "string", "example": "Unauthorized"},
                            "status": {"type": "integer", "example": 401},
                        },
                    }
                }
            },
        }

    def test_referenced_response_without_template_gets_default(self):
        responses = _generate("ts_project")["components"]["responses"]
        assert responses["404"] == {"description": "Not Found"}

    def test_security_schemes_for_used_auth(self):
        spec = _generate("ts_project")
        assert spec["components"]["securitySchemes"] == {
            "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
        }

    def test_regeneration_is_identical(self):
        assert _generate("ts_project") == _generate("ts_project")


class TestZodProject:
    def test_paths_with_base_path(self):
        spec = _generate("zod_project")
        assert list(spec["paths"]) == ["/api/products", "/api/products/{id}", "/api/uploads"]
        assert list(spec["paths"]["/api/products/{id}"]) == ["get"]

    def test_infer_alias_response_uses_schema_constant(self):
        operation = _generate("zod_project")["paths"]["/api/products"]["get"]
        assert operation["responses"]["200"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/ProductSchema"
        }
        assert list(operation["responses"]) == ["200", "400", "500"]

    def test_query_parameters_from_schema(self):
        operation = _generate("zod_project")["paths"]["/api/products"]["get"]
        page, search = operation["parameters"]
        assert page["in"] == "query"
        assert page["required"] is False
        assert page["schema"]["type"] == "integer"
        assert page["schema"]["minimum"] == 1
        assert search["name"] == "search"

    def test_created_response_and_conflict(self):
        responses = _generate("zod_project")["paths"]["/api/products"]["post"]["responses"]
        assert responses["201"]["description"] == "The created product"
        assert responses["409"] == {
            "description": "Conflict",
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/ConflictError"}}},
        }

    def test_multipart_upload(self):
        operation = _generate("zod_project")["paths"]["/api/uploads"]["post"]
        schema = operation["requestBody"]["content"]["multipart/form-data"]["schema"]
        assert schema["properties"]["file"] == {"type": "string", "format": "binary"}
        assert schema["required"] == ["file"]
        assert operation["security"] == [{"ApiKeyAuth": []}]
        assert operation["tags"] == ["Uploads"]

    def test_default_response_components(self):
        spec = _generate("zod_project")
        assert spec["components"]["responses"] == {
            "400": {"description": "Bad Request"},
            "500": {"description": "Internal Server Error"},
        }
        assert spec["components"]["securitySchemes"] == {
            "ApiKeyAuth": {"type": "apiKey", "in": "header", "name": "X-API-Key"}
        }

    def test_product_schema(self):
        product = _generate("zod_project")["components"]["schemas"]["ProductSchema"]
        assert product["properties"]["id"] == {"type": "string", "description": "Product identifier", "format": "uuid"}
        assert product["properties"]["category"] == {"$ref": "#/components/schemas/CategorySchema"}
        assert "tags" not in product["required"]


class TestRenderDocument:
    def test_json(self):
        text = render_document({"openapi": "3.0.0", "paths": {}}, Path("openapi.json"))
        assert text.endswith("\n")
        assert json.loads(text) == {"openapi": "3.0.0", "paths": {}}

    def test_yaml_keeps_key_order(self):
        text = render_document({"openapi": "3.0.0", "info": {"title": "T"}, "paths": {}}, Path("out/openapi.yaml"))
        assert text.startswith("openapi: 3.0.0")
        assert yaml.safe_load(text)["info"] == {"title": "T"}
