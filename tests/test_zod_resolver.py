from pathlib import Path

import pytest

from api_spec_gen.parser.nodes import CallExpression, Identifier
from api_spec_gen.schema.resolver import build_resolvers
from api_spec_gen.schema.session import ResolutionSession
from api_spec_gen.schema.zod import escape_pattern, is_builder

FIXTURES = Path(__file__).parent / "fixtures"
ZOD_PROJECT = FIXTURES / "zod_project"


def _resolvers(tmp_path, text: str):
    (tmp_path / "schemas.ts").write_text('import { z } from "zod";\n\n' + text)
    session = ResolutionSession()
    chain = build_resolvers(session, schema_dir=tmp_path, api_dir=tmp_path / "api", schema_type="zod")
    return chain, session


def _schema(tmp_path, text: str, name: str) -> dict:
    chain, session = _resolvers(tmp_path, text)
    chain.resolve(name)
    return session.schemas[name].to_openapi()


def _field(tmp_path, expression: str) -> dict:
    """Schema of a single property ``value`` built from ``expression``."""
    schema = _schema(tmp_path, f"export const S = z.object({{ value: {expression} }});\n", "S")
    return schema["properties"]["value"]


class TestObjects:
    def test_required_unless_optional_marker(self, tmp_path):
        schema = _schema(
            tmp_path,
            "export const User = z.object({\n"
            "  id: z.string(),\n"
            "  nick: z.string().optional(),\n"
            "  bio: z.string().nullable(),\n"
            "  note: z.string().nullish(),\n"
            "});\n",
            "User",
        )
        assert schema["required"] == ["id"]
        assert schema["properties"]["nick"] == {"type": "string", "nullable": True}

    @pytest.mark.parametrize(
        "expression",
        [
            "z.string().min(1).max(5).trim().optional()",
            "z.number().int().positive().nullish()",
            'z.string().optional().describe("Later call")',
            "z.array(z.string()).nonempty().nullable()",
        ],
    )
    def test_optional_marker_after_refinements(self, tmp_path, expression):
        schema = _schema(
            tmp_path, f"export const S = z.object({{ id: z.string(), value: {expression} }});\n", "S"
        )
        assert schema["required"] == ["id"]

    def test_bare_identifier_is_required_reference(self, tmp_path):
        schema = _schema(
            tmp_path,
            "export const Address = z.object({ city: z.string() });\n"
            "export const User = z.object({ home: Address });\n",
            "User",
        )
        assert schema == {
            "type": "object",
            "properties": {"home": {"$ref": "#/components/schemas/Address"}},
            "required": ["home"],
        }

    def test_record(self, tmp_path):
        assert _field(tmp_path, "z.record(z.string(), z.number())") == {
            "type": "object",
            "additionalProperties": {"type": "number"},
        }


class TestStrings:
    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("z.string().email()", {"type": "string", "format": "email"}),
            ("z.string().url()", {"type": "string", "format": "uri"}),
            ("z.string().datetime()", {"type": "string", "format": "date-time"}),
            ("z.date()", {"type": "string", "format": "date-time"}),
            ("z.string().min(2).max(8)", {"type": "string", "minLength": 2, "maxLength": 8}),
            ("z.string().length(4)", {"type": "string", "minLength": 4, "maxLength": 4}),
            ("z.string().nonempty()", {"type": "string", "minLength": 1}),
        ],
    )
    def test_string_refinements(self, tmp_path, expression, expected):
        assert _field(tmp_path, expression) == expected

    def test_regex(self, tmp_path):
        assert _field(tmp_path, "z.string().regex(/^[a-z]+$/)") == {"type": "string", "pattern": "^[a-z]+$"}

    def test_affix_patterns_are_escaped(self, tmp_path):
        assert _field(tmp_path, 'z.string().startsWith("v1.")')["pattern"] == "^v1\\."
        assert _field(tmp_path, 'z.string().endsWith(".png")')["pattern"] == "\\.png$"

    def test_describe(self, tmp_path):
        assert _field(tmp_path, 'z.string().describe("Display name")') == {
            "type": "string",
            "description": "Display name",
        }


class TestNumbers:
    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("z.number().int()", {"type": "integer"}),
            ("z.number().positive()", {"type": "number", "minimum": 0, "exclusiveMinimum": True}),
            ("z.number().nonnegative()", {"type": "number", "minimum": 0}),
            ("z.number().min(1).max(10)", {"type": "number", "minimum": 1, "maximum": 10}),
            ("z.number().lt(5)", {"type": "number", "maximum": 5, "exclusiveMaximum": True}),
            ("z.number().multipleOf(5)", {"type": "number", "multipleOf": 5}),
            ("z.coerce.number().int().min(1)", {"type": "integer", "minimum": 1}),
            ("z.bigint()", {"type": "integer", "format": "int64"}),
        ],
    )
    def test_number_refinements(self, tmp_path, expression, expected):
        assert _field(tmp_path, expression) == expected

    def test_default(self, tmp_path):
        assert _field(tmp_path, "z.number().default(10)") == {"type": "number", "default": 10}

    def test_object_default_keeps_nulls(self, tmp_path):
        field = _field(
            tmp_path, "z.object({ a: z.string().nullable(), b: z.number() }).default({ a: null, b: 1 })"
        )
        assert field["default"] == {"a": None, "b": 1}

    def test_deprecated(self, tmp_path):
        assert _field(tmp_path, "z.number().deprecated()") == {"type": "number", "deprecated": True}


class TestCollections:
    def test_array_forms(self, tmp_path):
        expected = {"type": "array", "items": {"type": "string"}, "minItems": 1}
        assert _field(tmp_path, "z.array(z.string()).min(1)") == expected
        assert _field(tmp_path, "z.string().array().nonempty()") == expected

    def test_set(self, tmp_path):
        assert _field(tmp_path, "z.set(z.string())") == {
            "type": "array",
            "items": {"type": "string"},
            "uniqueItems": True,
        }

    def test_enum(self, tmp_path):
        assert _field(tmp_path, 'z.enum(["a", "b"])') == {"type": "string", "enum": ["a", "b"]}

    def test_union_of_literals_merges(self, tmp_path):
        assert _field(tmp_path, 'z.union([z.literal("x"), z.literal("y")])') == {
            "type": "string",
            "enum": ["x", "y"],
        }

    def test_union_with_null_collapses(self, tmp_path):
        assert _field(tmp_path, "z.union([z.string(), z.null()])") == {"type": "string", "nullable": True}

    def test_mixed_union(self, tmp_path):
        assert _field(tmp_path, "z.union([z.string(), z.number()])") == {
            "oneOf": [{"type": "string"}, {"type": "number"}],
        }

    def test_discriminated_union(self, tmp_path):
        schema = _schema(
            tmp_path,
            'export const Cat = z.object({ kind: z.literal("cat") });\n'
            'export const Dog = z.object({ kind: z.literal("dog") });\n'
            'export const Pet = z.discriminatedUnion("kind", [Cat, Dog]);\n',
            "Pet",
        )
        assert schema == {
            "type": "object",
            "discriminator": {"propertyName": "kind"},
            "oneOf": [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Dog"}],
        }

    def test_tuple_uses_first_element(self, tmp_path):
        assert _field(tmp_path, "z.tuple([z.number(), z.string()])") == {
            "type": "array",
            "items": {"type": "number"},
        }


class TestComposition:
    def test_extend_and_omit(self, tmp_path):
        schema = _schema(
            tmp_path,
            "export const Base = z.object({ id: z.string(), name: z.string() });\n"
            "export const Created = Base.omit({ id: true }).extend({ draft: z.boolean().optional() });\n",
            "Created",
        )
        assert schema == {
            "type": "object",
            "properties": {"name": {"type": "string"}, "draft": {"type": "boolean", "nullable": True}},
            "required": ["name"],
        }

    def test_pick(self, tmp_path):
        schema = _schema(
            tmp_path,
            "export const Base = z.object({ id: z.string(), name: z.string() });\n"
            "export const OnlyId = Base.pick({ id: true });\n",
            "OnlyId",
        )
        assert schema["properties"] == {"id": {"type": "string"}}

    def test_partial(self, tmp_path):
        schema = _schema(
            tmp_path,
            "export const Base = z.object({ id: z.string() });\nexport const Patch = Base.partial();\n",
            "Patch",
        )
        assert "required" not in schema
        assert schema["properties"] == {"id": {"type": "string"}}

    def test_merge(self, tmp_path):
        schema = _schema(
            tmp_path,
            "export const A = z.object({ a: z.string() });\n"
            "export const B = z.object({ b: z.number() });\n"
            "export const AB = A.merge(B);\n",
            "AB",
        )
        assert schema["required"] == ["a", "b"]

    def test_intersection(self, tmp_path):
        schema = _schema(
            tmp_path,
            "export const A = z.object({ a: z.string() });\n"
            "export const B = z.object({ b: z.number() });\n"
            "export const AB = z.intersection(A, B);\n",
            "AB",
        )
        assert schema == {
            "allOf": [{"$ref": "#/components/schemas/A"}, {"$ref": "#/components/schemas/B"}],
        }

    def test_or(self, tmp_path):
        assert _field(tmp_path, "z.string().or(z.number())") == {
            "oneOf": [{"type": "string"}, {"type": "number"}],
        }

    def test_lazy_self_reference(self, tmp_path):
        schema = _schema(
            tmp_path,
            "export const Category = z.object({\n"
            "  name: z.string(),\n"
            "  children: z.array(z.lazy(() => Category)),\n"
            "});\n",
            "Category",
        )
        assert schema["properties"]["children"] == {
            "type": "array",
            "items": {"$ref": "#/components/schemas/Category"},
        }

    def test_file_custom(self, tmp_path):
        assert _field(tmp_path, "z.custom<File>()") == {"type": "string", "format": "binary"}
        assert _field(tmp_path, "z.instanceof(File)") == {"type": "string", "format": "binary"}

    def test_dates(self, tmp_path):
        assert _field(tmp_path, "z.instanceof(Date)") == {"type": "string", "format": "date-time"}
        assert _field(tmp_path, "new Date()") == {"type": "string", "format": "date-time"}


class TestLookup:
    def test_infer_alias_maps_to_schema(self, tmp_path):
        chain, session = _resolvers(
            tmp_path,
            "export const UserSchema = z.object({ id: z.string() });\n"
            "export type User = z.infer<typeof UserSchema>;\n",
        )
        schema = chain.resolve("User")
        assert session.name_of(schema) == "UserSchema"
        assert "User" not in session.schemas

    def test_type_alias_declared_before_same_name_schema(self, tmp_path):
        chain, session = _resolvers(
            tmp_path,
            "export type User = z.infer<typeof User>;\n"
            "export const User = z.object({ id: z.string() });\n",
        )
        chain.resolve("User")
        assert session.schemas["User"].to_openapi()["required"] == ["id"]

    def test_non_builder_constant_is_ignored(self, tmp_path):
        chain, session = _resolvers(tmp_path, "export const LIMIT = 10;\n")
        assert chain.resolve("LIMIT").is_untyped()
        assert session.schemas == {}

    def test_route_file_schemas_are_found(self, tmp_path):
        route = tmp_path / "api" / "items"
        route.mkdir(parents=True)
        (route / "route.ts").write_text(
            'import { z } from "zod";\nconst ItemQuery = z.object({ q: z.string() });\n'
        )
        chain, session = _resolvers(tmp_path, "")
        chain.resolve("ItemQuery")
        assert session.schemas["ItemQuery"].to_openapi()["required"] == ["q"]


class TestFixtureProject:
    def test_product_schemas(self):
        session = ResolutionSession()
        chain = build_resolvers(
            session,
            schema_dir=ZOD_PROJECT / "src" / "schemas",
            api_dir=ZOD_PROJECT / "src" / "app" / "api",
            schema_type="zod",
        )
        chain.resolve("CreateProductSchema")
        created = session.schemas["CreateProductSchema"].to_openapi()
        assert list(created["properties"]) == ["name", "price", "tags", "status", "category", "sku", "draft"]
        assert created["required"] == ["name", "price", "status", "category", "sku", "draft"]
        assert created["properties"]["draft"] == {"type": "boolean", "default": False}
        assert created["properties"]["sku"] == {"type": "string", "pattern": "^SKU-"}

        category = session.schemas["CategorySchema"].to_openapi()
        assert category["properties"]["parent"] == {
            "allOf": [{"$ref": "#/components/schemas/CategorySchema"}],
            "nullable": True,
        }
        assert category["required"] == ["id", "name"]


class TestHelpers:
    def test_escape_pattern(self):
        assert escape_pattern("a.b*c") == "a\\.b\\*c"
        assert escape_pattern("plain-text") == "plain-text"

    def test_is_builder(self):
        z_call = CallExpression(callee=Identifier("z"), method="string")
        assert is_builder(z_call)
        assert is_builder(CallExpression(callee=Identifier("Base"), method="extend"))
        assert not is_builder(CallExpression(callee=Identifier("api"), method="get"))
        assert not is_builder(Identifier("z"))
