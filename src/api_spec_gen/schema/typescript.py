"""Structural type resolver.

Converts interfaces, type aliases and enums found under a schema root into
:class:`~api_spec_gen.schema.model.Schema` trees. Named types used inside
another type are registered in the session and emitted as references, which
is what keeps recursive types finite.
"""

import logging
import re
from contextlib import contextmanager
from pathlib import Path

from ..parser.nodes import (
    ArrayType,
    EnumDeclaration,
    InterfaceDeclaration,
    IntersectionType,
    KeywordType,
    LiteralType,
    ObjectType,
    TupleType,
    TypeAliasDeclaration,
    TypeQuery,
    TypeReference,
    UnionType,
    infer_target,
)
from .model import Schema, SchemaKind, literal_type
from .session import ResolutionSession

logger = logging.getLogger(__name__)

KEYWORDS = {
    "string": SchemaKind.STRING,
    "number": SchemaKind.NUMBER,
    "boolean": SchemaKind.BOOLEAN,
    "null": SchemaKind.NULL,
    "undefined": SchemaKind.NULL,
}
NULLISH = {"null", "undefined"}

ARRAY_LIKE = {"Array", "ReadonlyArray"}
MAP_LIKE = {"Record", "Map"}
PASSTHROUGH = {"Partial", "Required", "Readonly", "Promise", "Awaited"}
BINARY = {"File", "Blob", "Buffer"}
DATE_LITERAL = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2}(\.\d{3})?Z)?$")


def _is_structural(declaration) -> bool:
    if isinstance(declaration, (InterfaceDeclaration, EnumDeclaration)):
        return True
    return isinstance(declaration, TypeAliasDeclaration) and infer_target(declaration.value) is None


def _alias_target(declaration) -> str | None:
    if isinstance(declaration, TypeAliasDeclaration):
        return infer_target(declaration.value)
    return None


def merge_objects(schemas: list[Schema]) -> Schema:
    """Merge object schemas left to right; later properties win."""
    properties: dict[str, Schema] = {}
    required: list[str] = []
    additional = None
    for schema in schemas:
        properties.update(schema.properties)
        for name in schema.required:
            if name not in required:
                required.append(name)
        if schema.additional_properties is not None:
            additional = schema.additional_properties
    return Schema(
        kind=SchemaKind.OBJECT,
        properties=properties,
        required=required,
        additional_properties=additional,
    )


class TypeScriptResolver:
    def __init__(self, session: ResolutionSession, schema_dir: Path, delegate=None):
        self.session = session
        self.schema_dir = Path(schema_dir)
        self.delegate = delegate
        self._symbols: dict | None = None
        self._depth = 0
        self._instantiating: set[str] = set()

    def resolve(self, name: str, root: Path | None = None) -> Schema | None:
        """Definition of a structural type, or None if ``name`` is not one."""
        session = self.session
        if name in session.schemas:
            return session.schemas[name]
        if name in session.in_progress:
            session.cycle_hits.add(name)
            return Schema.reference(name)

        with self._pass(Path(root) if root is not None else self.schema_dir):
            declaration = self._symbols.get(name)
            if not _is_structural(declaration):
                return None
            return self._define(name, declaration)

    @contextmanager
    def _pass(self, root: Path):
        """One symbol table per top-level resolution, shared by nested lookups."""
        if self._depth == 0:
            self._symbols = self._build_symbols(root)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._symbols = None

    def _build_symbols(self, root: Path) -> dict:
        symbols = {}
        for path in self.session.walk(root):
            source = self.session.source(path)
            if source is None:
                continue
            for declaration in source.declarations:
                symbols.setdefault(declaration.name, declaration)
        return symbols

    def _define(self, name: str, declaration) -> Schema:
        self.session.in_progress.add(name)
        try:
            schema = self._declaration(declaration, _unbound(declaration))
        finally:
            self.session.in_progress.discard(name)
        return self.session.register(name, schema)

    # --- declarations -------------------------------------------------------

    def _declaration(self, declaration, env: dict) -> Schema:
        if isinstance(declaration, EnumDeclaration):
            return _enum(declaration)
        if isinstance(declaration, InterfaceDeclaration):
            return self._interface(declaration, env)
        return self._type(declaration.value, env)

    def _interface(self, declaration: InterfaceDeclaration, env: dict) -> Schema:
        parts = []
        for base_node in declaration.extends:
            base = self.session.deref(self._type(base_node, env))
            if base is None or base.kind != SchemaKind.OBJECT:
                logger.debug("Cannot merge base %s into %s", base_node, declaration.name)
                continue
            parts.append(base)
        own = self._object(declaration.body, env)
        merged = merge_objects(parts + [own])
        # an own optional member overrides an inherited required one
        overridden = set(own.properties) - set(own.required)
        if overridden:
            merged.required = [name for name in merged.required if name not in overridden]
        return merged

    # --- type expressions ---------------------------------------------------

    def _type(self, node, env: dict) -> Schema:
        if isinstance(node, KeywordType):
            return _keyword(node.name)
        if isinstance(node, LiteralType):
            if _is_date_literal(node):
                return Schema.date_time()
            return Schema.literal(node.value)
        if isinstance(node, TypeReference):
            return self._reference(node, env)
        if isinstance(node, ArrayType):
            return Schema.array(self._type(node.element, env))
        if isinstance(node, TupleType):
            return self._tuple(node, env)
        if isinstance(node, UnionType):
            return self._union(node, env)
        if isinstance(node, IntersectionType):
            return self._intersection(node, env)
        if isinstance(node, ObjectType):
            return self._object(node, env)
        if isinstance(node, TypeQuery):
            return self._named(node.name, (), env)
        logger.debug("Unsupported type %s, using an untyped object", getattr(node, "text", node))
        return Schema.untyped()

    def _object(self, node: ObjectType, env: dict) -> Schema:
        properties = {}
        required = []
        for member in node.members:
            schema = self._type(member.type, env) if member.type is not None else Schema.any()
            if member.description:
                schema = schema.model_copy(update={"description": member.description})
            properties[member.name] = schema
            if not member.optional:
                required.append(member.name)
        additional = self._type(node.index_type, env) if node.index_type is not None else None
        return Schema(
            kind=SchemaKind.OBJECT,
            properties=properties,
            required=required,
            additional_properties=additional,
        )

    def _tuple(self, node: TupleType, env: dict) -> Schema:
        if not node.elements:
            return Schema.array(Schema.any())
        schema = Schema.array(self._type(node.elements[0], env))
        return schema.model_copy(update={"min_items": len(node.elements), "max_items": len(node.elements)})

    def _union(self, node: UnionType, env: dict) -> Schema:
        members = [m for m in node.members if not (isinstance(m, KeywordType) and m.name in NULLISH)]
        nullable = len(members) < len(node.members)
        if not members:
            return Schema.primitive(SchemaKind.NULL)

        if all(isinstance(m, LiteralType) and not _is_date_literal(m) for m in members):
            kinds = {literal_type(m.value) for m in members}
            if len(kinds) == 1:
                schema = Schema.enum([m.value for m in members], kinds.pop())
                return schema.model_copy(update={"nullable": nullable})

        schemas = [self._type(m, env) for m in members]
        if len(schemas) == 1:
            schema = schemas[0]
        else:
            schema = Schema.one_of(schemas)
        if nullable:
            schema = schema.model_copy(update={"nullable": True})
        return schema

    def _intersection(self, node: IntersectionType, env: dict) -> Schema:
        schemas = [self._type(m, env) for m in node.members]
        views = [self.session.deref(s) for s in schemas]
        if views and all(v is not None and v.kind == SchemaKind.OBJECT for v in views):
            return merge_objects(views)
        return Schema.all_of(schemas)

    # --- references ---------------------------------------------------------

    def _reference(self, node: TypeReference, env: dict) -> Schema:
        name, args = node.name, node.arguments
        if name in env and not args:
            return env[name].model_copy()

        target = infer_target(node)
        if target is not None:
            return self._delegated(target)

        if name == "Date":
            return Schema.date_time()
        if name in BINARY:
            return Schema.binary()
        if name in ARRAY_LIKE:
            return Schema.array(self._argument(args, 0, env))
        if name == "Set":
            return Schema.array(self._argument(args, 0, env)).model_copy(update={"unique_items": True})
        if name in MAP_LIKE:
            return self._record(args, env)
        if name in PASSTHROUGH:
            return self._argument(args, 0, env)
        if name == "NonNullable":
            return self._argument(args, 0, env).model_copy(update={"nullable": False})
        if name in ("Pick", "Omit"):
            return self._projection(name, args, env)
        return self._named(name, args, env)

    def _argument(self, args: tuple, index: int, env: dict) -> Schema:
        if index < len(args):
            return self._type(args[index], env)
        return Schema.any()

    def _record(self, args: tuple, env: dict) -> Schema:
        value = self._argument(args, len(args) - 1, env) if args else Schema.any()
        keys = _keys(args[0]) if len(args) == 2 else None
        if keys:
            return Schema.object({key: value.model_copy() for key in keys}, list(keys))
        return Schema(kind=SchemaKind.OBJECT, additional_properties=value)

    def _projection(self, kind: str, args: tuple, env: dict) -> Schema:
        if len(args) < 2:
            logger.debug("%s without keys, using an untyped object", kind)
            return Schema.untyped()
        base = self._base(args[0], env)
        if base is None or base.kind != SchemaKind.OBJECT:
            logger.debug("%s base is not an object, using an untyped object", kind)
            return Schema.untyped()

        keys = set(_keys(args[1]) or [])
        if kind == "Pick":
            names = [name for name in base.properties if name in keys]
            additional = None
        else:
            names = [name for name in base.properties if name not in keys]
            additional = base.additional_properties
        return Schema(
            kind=SchemaKind.OBJECT,
            properties={name: base.properties[name] for name in names},
            required=[name for name in base.required if name in names],
            additional_properties=additional,
        )

    def _base(self, node, env: dict) -> Schema | None:
        """Resolve a Pick/Omit base without registering it as a named schema."""
        session = self.session
        if not isinstance(node, TypeReference) or node.arguments or node.name in env:
            return session.deref(self._type(node, env))

        name = node.name
        if name in session.schemas:
            return session.deref(session.schemas[name])
        if name in session.in_progress:
            session.cycle_hits.add(name)
            return None
        declaration = self._symbols.get(name)
        if not _is_structural(declaration):
            return session.deref(self._type(node, env))

        session.in_progress.add(name)
        try:
            schema = self._declaration(declaration, _unbound(declaration))
        finally:
            session.in_progress.discard(name)
        if name in session.cycle_hits:
            # the base refers to itself, so its reference must resolve
            session.register(name, schema)
        return session.deref(schema)

    def _named(self, name: str, args: tuple, env: dict) -> Schema:
        session = self.session
        declaration = self._symbols.get(name)
        if _is_structural(declaration) and args and getattr(declaration, "type_parameters", ()):
            return self._instantiate(name, declaration, args, env)

        if name in session.schemas:
            return Schema.reference(name)
        if name in session.in_progress:
            session.cycle_hits.add(name)
            return Schema.reference(name)
        if _is_structural(declaration):
            self._define(name, declaration)
            return Schema.reference(name)
        return self._delegated(_alias_target(declaration) or name)

    def _instantiate(self, name: str, declaration, args: tuple, env: dict) -> Schema:
        """Expand a generic declaration inline with its type arguments bound."""
        if name in self._instantiating:
            logger.debug("Recursive generic %s, using an untyped object", name)
            return Schema.untyped()
        bound = _unbound(declaration)
        for parameter, arg in zip(declaration.type_parameters, args):
            bound[parameter] = self._type(arg, env)
        self._instantiating.add(name)
        try:
            return self._declaration(declaration, bound)
        finally:
            self._instantiating.discard(name)

    def _delegated(self, name: str) -> Schema:
        if self.delegate is not None:
            schema = self.delegate.resolve(name)
            if schema is not None:
                registered = self.session.name_of(schema)
                return Schema.reference(registered) if registered else schema
        logger.debug("Type %s not found, using an untyped object", name)
        return Schema.untyped()


def _unbound(declaration) -> dict:
    return {parameter: Schema.any() for parameter in getattr(declaration, "type_parameters", ())}


def _keyword(name: str) -> Schema:
    if name in KEYWORDS:
        return Schema.primitive(KEYWORDS[name])
    if name == "bigint":
        return Schema.primitive(SchemaKind.INTEGER, format="int64")
    if name in ("any", "unknown"):
        return Schema.any()
    return Schema.untyped()


def _enum(declaration: EnumDeclaration) -> Schema:
    numeric = any(
        isinstance(member.value, (int, float)) and not isinstance(member.value, bool)
        for member in declaration.members
    )
    values = [member.value if member.value is not None else member.name for member in declaration.members]
    return Schema.enum(values, "number" if numeric else "string")


def _is_date_literal(node: LiteralType) -> bool:
    return isinstance(node.value, str) and DATE_LITERAL.match(node.value) is not None

def _keys(node) -> list[str] | None:
    """String literal keys of ``"a"`` or ``"a" | "b"``."""
    if isinstance(node, LiteralType) and isinstance(node.value, str):
        return [node.value]
    if isinstance(node, UnionType):
        keys = []
        for member in node.members:
            if not (isinstance(member, LiteralType) and isinstance(member.value, str)):
                return None
            keys.append(member.value)
        return keys
    return None
