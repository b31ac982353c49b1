"""NormalizedSchema: the tagged schema tree both resolvers produce.

``Schema.to_openapi`` serializes a tree into an OpenAPI 3.0 schema object.
References are always emitted as ``$ref`` pointers into
``#/components/schemas``, never expanded inline.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

SCHEMA_REF_PREFIX = "#/components/schemas/"


class SchemaKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    NULL = "null"
    OBJECT = "object"
    ARRAY = "array"
    ENUM = "enum"
    ONE_OF = "oneOf"
    ALL_OF = "allOf"
    REFERENCE = "reference"
    ANY = "any"


PRIMITIVE_KINDS = {SchemaKind.STRING, SchemaKind.NUMBER, SchemaKind.INTEGER, SchemaKind.BOOLEAN, SchemaKind.NULL}

# serialized after the structural keys, in this order
_METADATA = (
    ("nullable", "nullable"),
    ("description", "description"),
    ("deprecated", "deprecated"),
    ("format", "format"),
    ("pattern", "pattern"),
    ("min_length", "minLength"),
    ("max_length", "maxLength"),
    ("minimum", "minimum"),
    ("exclusive_minimum", "exclusiveMinimum"),
    ("maximum", "maximum"),
    ("exclusive_maximum", "exclusiveMaximum"),
    ("multiple_of", "multipleOf"),
    ("min_items", "minItems"),
    ("max_items", "maxItems"),
    ("unique_items", "uniqueItems"),
)


class Schema(BaseModel):
    kind: SchemaKind
    enum_type: str | None = None  # value type of an ENUM: string / number / boolean
    values: list[Any] = Field(default_factory=list)
    properties: dict[str, "Schema"] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    additional_properties: "Schema | bool | None" = None
    items: "Schema | None" = None
    variants: list["Schema"] = Field(default_factory=list)
    ref: str | None = None
    discriminator: str | None = None

    nullable: bool = False
    description: str | None = None
    deprecated: bool = False
    format: str | None = None
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    multiple_of: int | float | None = None
    min_items: int | None = None
    max_items: int | None = None
    unique_items: bool = False
    default: Any = None
    has_default: bool = False

    # --- constructors -------------------------------------------------------

    @classmethod
    def primitive(cls, kind: SchemaKind, **metadata) -> "Schema":
        return cls(kind=kind, **metadata)

    @classmethod
    def untyped(cls) -> "Schema":
        """An open object schema; what unresolvable shapes degrade to."""
        return cls(kind=SchemaKind.OBJECT)

    @classmethod
    def any(cls) -> "Schema":
        return cls(kind=SchemaKind.ANY)

    @classmethod
    def date_time(cls) -> "Schema":
        return cls(kind=SchemaKind.STRING, format="date-time")

    @classmethod
    def binary(cls) -> "Schema":
        return cls(kind=SchemaKind.STRING, format="binary")

    @classmethod
    def object(cls, properties: dict | None = None, required: list | None = None) -> "Schema":
        return cls(kind=SchemaKind.OBJECT, properties=properties or {}, required=required or [])

    @classmethod
    def array(cls, items: "Schema") -> "Schema":
        return cls(kind=SchemaKind.ARRAY, items=items)

    @classmethod
    def enum(cls, values: list, enum_type: str = "string") -> "Schema":
        return cls(kind=SchemaKind.ENUM, values=list(values), enum_type=enum_type)

    @classmethod
    def literal(cls, value: Any) -> "Schema":
        """A single-value enum of the literal's primitive type."""
        if value is None:
            return cls(kind=SchemaKind.NULL)
        return cls.enum([value], literal_type(value))

    @classmethod
    def one_of(cls, variants: list, discriminator: str | None = None) -> "Schema":
        return cls(kind=SchemaKind.ONE_OF, variants=list(variants), discriminator=discriminator)

    @classmethod
    def all_of(cls, variants: list) -> "Schema":
        return cls(kind=SchemaKind.ALL_OF, variants=list(variants))

    @classmethod
    def reference(cls, name: str) -> "Schema":
        return cls(kind=SchemaKind.REFERENCE, ref=name)

    # --- queries ------------------------------------------------------------

    def is_null(self) -> bool:
        return self.kind == SchemaKind.NULL or (self.kind == SchemaKind.ENUM and self.values == [None])

    def is_untyped(self) -> bool:
        return self.kind == SchemaKind.OBJECT and not self.properties and self.additional_properties is None

    # --- serialization ------------------------------------------------------

    def to_openapi(self) -> dict:
        if self.kind == SchemaKind.REFERENCE:
            pointer = {"$ref": SCHEMA_REF_PREFIX + self.ref}
            metadata = self._metadata()
            if not metadata:
                return pointer
            # a $ref cannot carry sibling keywords in OpenAPI 3.0
            return {"allOf": [pointer], **metadata}

        data: dict = {}
        kind = self.kind
        if kind == SchemaKind.ENUM:
            data["type"] = self.enum_type or "string"
            data["enum"] = list(self.values)
        elif kind in PRIMITIVE_KINDS:
            data["type"] = kind.value
        elif kind == SchemaKind.OBJECT:
            data["type"] = "object"
            if self.properties:
                data["properties"] = {name: prop.to_openapi() for name, prop in self.properties.items()}
            if self.required:
                data["required"] = list(self.required)
            if isinstance(self.additional_properties, Schema):
                data["additionalProperties"] = self.additional_properties.to_openapi()
            elif self.additional_properties is not None:
                data["additionalProperties"] = self.additional_properties
        elif kind == SchemaKind.ARRAY:
            data["type"] = "array"
            data["items"] = self.items.to_openapi() if self.items is not None else {}
        elif kind in (SchemaKind.ONE_OF, SchemaKind.ALL_OF):
            if self.discriminator:
                data["type"] = "object"
                data["discriminator"] = {"propertyName": self.discriminator}
            data[kind.value] = [variant.to_openapi() for variant in self.variants]

        data.update(self._metadata())
        return data

    def _metadata(self) -> dict:
        data = {}
        for attr, key in _METADATA:
            value = getattr(self, attr)
            if value is None or value is False:
                continue
            data[key] = value
        if self.has_default:
            data["default"] = self.default
        return data


def literal_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


Schema.model_rebuild()
