from api_spec_gen.schema.model import Schema, SchemaKind


class TestConstructors:
    def test_literal_types(self):
        assert Schema.literal("a").to_openapi() == {"type": "string", "enum": ["a"]}
        assert Schema.literal(3).to_openapi() == {"type": "number", "enum": [3]}
        assert Schema.literal(True).to_openapi() == {"type": "boolean", "enum": [True]}

    def test_null_literal(self):
        schema = Schema.literal(None)
        assert schema.kind == SchemaKind.NULL
        assert schema.is_null()

    def test_untyped_is_open_object(self):
        schema = Schema.untyped()
        assert schema.is_untyped()
        assert schema.to_openapi() == {"type": "object"}

    def test_any_is_empty(self):
        assert Schema.any().to_openapi() == {}


class TestToOpenApi:
    def test_object(self):
        schema = Schema.object(
            {"id": Schema.primitive(SchemaKind.STRING), "age": Schema.primitive(SchemaKind.NUMBER)},
            ["id"],
        )
        assert schema.to_openapi() == {
            "type": "object",
            "properties": {"id": {"type": "string"}, "age": {"type": "number"}},
            "required": ["id"],
        }

    def test_additional_properties(self):
        schema = Schema(kind=SchemaKind.OBJECT, additional_properties=Schema.primitive(SchemaKind.NUMBER))
        assert schema.to_openapi() == {"type": "object", "additionalProperties": {"type": "number"}}

    def test_array(self):
        assert Schema.array(Schema.primitive(SchemaKind.STRING)).to_openapi() == {
            "type": "array",
            "items": {"type": "string"},
        }

    def test_reference(self):
        assert Schema.reference("User").to_openapi() == {"$ref": "#/components/schemas/User"}

    def test_reference_with_metadata_wraps_in_all_of(self):
        schema = Schema.reference("User").model_copy(update={"nullable": True, "description": "Owner"})
        assert schema.to_openapi() == {
            "allOf": [{"$ref": "#/components/schemas/User"}],
            "nullable": True,
            "description": "Owner",
        }

    def test_one_of_with_discriminator(self):
        schema = Schema.one_of([Schema.reference("Cat"), Schema.reference("Dog")], discriminator="kind")
        assert schema.to_openapi() == {
            "type": "object",
            "discriminator": {"propertyName": "kind"},
            "oneOf": [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Dog"}],
        }

    def test_all_of(self):
        schema = Schema.all_of([Schema.reference("A"), Schema.reference("B")])
        assert schema.to_openapi() == {
            "allOf": [{"$ref": "#/components/schemas/A"}, {"$ref": "#/components/schemas/B"}],
        }

    def test_metadata_keys(self):
        schema = Schema.primitive(
            SchemaKind.STRING, format="email", min_length=3, max_length=10, pattern="^a", deprecated=True
        )
        assert schema.to_openapi() == {
            "type": "string",
            "deprecated": True,
            "format": "email",
            "pattern": "^a",
            "minLength": 3,
            "maxLength": 10,
        }

    def test_false_default_is_kept(self):
        schema = Schema.primitive(SchemaKind.BOOLEAN, default=False, has_default=True)
        assert schema.to_openapi() == {"type": "boolean", "default": False}

    def test_exclusive_minimum(self):
        schema = Schema.primitive(SchemaKind.NUMBER, minimum=0, exclusive_minimum=True)
        assert schema.to_openapi() == {"type": "number", "minimum": 0, "exclusiveMinimum": True}

