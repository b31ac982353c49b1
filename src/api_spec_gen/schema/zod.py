"""Schema-builder resolver for Zod.

Interprets ``z.*`` builder chains declared as constants, e.g.::

    export const UserSchema = z.object({
      id: z.string().uuid(),
      email: z.string().email().describe("Login address"),
      nickname: z.string().min(2).optional(),
    });

Factory calls (``z.object``, ``z.string`` ...) produce a base schema, the calls
chained after them are applied from the innermost outward. A bare identifier
names another schema and becomes a reference to it.
"""

import logging
import re
from pathlib import Path

from ..generator.paths import is_route_file
from ..parser.nodes import (
    ArrayLiteral,
    ArrowFunction,
    CallExpression,
    Identifier,
    Literal,
    NewExpression,
    ObjectLiteral,
    PropertyAccess,
    RegexLiteral,
    TypeAliasDeclaration,
    TypeReference,
    VariableDeclaration,
    call_chain,
    chain_root,
    infer_target,
)
from .model import Schema, SchemaKind
from .session import ResolutionSession
from .typescript import merge_objects

logger = logging.getLogger(__name__)

OPTIONAL_MARKERS = {"optional", "nullable", "nullish"}

STRING_FORMATS = {
    "email": "email",
    "url": "uri",
    "uri": "uri",
    "uuid": "uuid",
    "cuid": "cuid",
    "cuid2": "cuid2",
    "ulid": "ulid",
    "datetime": "date-time",
    "date": "date",
    "time": "time",
    "ip": "ip",
    "base64": "byte",
}

PRIMITIVE_FACTORIES = {
    "string": SchemaKind.STRING,
    "number": SchemaKind.NUMBER,
    "nan": SchemaKind.NUMBER,
    "boolean": SchemaKind.BOOLEAN,
    "null": SchemaKind.NULL,
    "undefined": SchemaKind.NULL,
    "void": SchemaKind.NULL,
}

# chained calls that leave the emitted schema unchanged
NO_OP_METHODS = {
    "refine",
    "superRefine",
    "transform",
    "pipe",
    "brand",
    "catch",
    "readonly",
    "trim",
    "toLowerCase",
    "toUpperCase",
    "strict",
    "passthrough",
    "strip",
    "finite",
}

# methods that mark ``Name.method(...)`` as a builder expression
SCHEMA_METHODS = {
    "extend",
    "merge",
    "pick",
    "omit",
    "partial",
    "required",
    "array",
    "optional",
    "nullable",
    "nullish",
    "describe",
    "default",
    "or",
    "and",
    "refine",
    "superRefine",
    "transform",
    "keyof",
}

SAFE_INTEGER = 9007199254740991

_REGEX_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\]")


def escape_pattern(text: str) -> str:
    """Escape regex metacharacters of a literal fragment."""
    return _REGEX_SPECIALS.sub(lambda m: "\\" + m.group(0), text)


def _is_z(expr) -> bool:
    if isinstance(expr, Identifier):
        return expr.name == "z"
    # z.coerce.number()
    return isinstance(expr, PropertyAccess) and isinstance(expr.target, Identifier) and expr.target.name == "z"


def is_builder(expr) -> bool:
    """True when a constant's value is a Zod builder expression."""
    if not isinstance(expr, CallExpression):
        return False
    root = chain_root(expr)
    if _is_z(root):
        return True
    chain = call_chain(expr)
    return isinstance(root, Identifier) and chain[-1].method in SCHEMA_METHODS


def _number(expr) -> int | float | None:
    if isinstance(expr, Literal) and isinstance(expr.value, (int, float)) and not isinstance(expr.value, bool):
        return expr.value
    return None


def _string(expr) -> str | None:
    if isinstance(expr, Literal) and isinstance(expr.value, str):
        return expr.value
    return None


def _mask_keys(expr) -> list[str]:
    """Keys of ``{ a: true, b: true }`` as passed to pick/omit."""
    if not isinstance(expr, ObjectLiteral):
        return []
    return [key for key, value in expr.entries if not (isinstance(value, Literal) and value.value is False)]


class ZodResolver:
    def __init__(
        self,
        session: ResolutionSession,
        schema_dir: Path,
        api_dir: Path | None = None,
        delegate=None,
    ):
        self.session = session
        self.schema_dir = Path(schema_dir)
        self.api_dir = Path(api_dir) if api_dir is not None else None
        self.delegate = delegate
        self._aliases: dict[str, str] | None = None
        self._found: dict[str, object] = {}

    # --- lookup -------------------------------------------------------------

    def resolve(self, name: str, root: Path | None = None) -> Schema | None:
        """Definition of a Zod schema constant, or None if ``name`` is not one."""
        root = Path(root) if root is not None else self.schema_dir
        name = self._prescan(root).get(name, name)
        session = self.session
        if name in session.schemas:
            return session.schemas[name]
        if name in session.in_progress:
            session.cycle_hits.add(name)
            return Schema.reference(name)

        expr = self._find(name, root)
        if expr is None:
            return None
        return self._define(name, expr)

    def _candidates(self, root: Path) -> list[Path]:
        """Route files first, then every source file under the schema root."""
        files = []
        if self.api_dir is not None:
            files.extend(path for path in self.session.walk(self.api_dir) if is_route_file(path))
        for path in self.session.walk(root):
            if path not in files:
                files.append(path)
        return files

    def _prescan(self, root: Path) -> dict[str, str]:
        """Map ``type X = z.infer<typeof XSchema>`` aliases to their schema constant."""
        if self._aliases is None:
            self._aliases = {}
            for path in self._candidates(root):
                source = self.session.source(path)
                if source is None:
                    continue
                for declaration in source.declarations:
                    if isinstance(declaration, TypeAliasDeclaration):
                        target = infer_target(declaration.value)
                        if target and target != declaration.name:
                            self._aliases.setdefault(declaration.name, target)
        return self._aliases

    def _find(self, name: str, root: Path):
        if name not in self._found:
            self._found[name] = None
            for path in self._candidates(root):
                source = self.session.source(path)
                if source is None:
                    continue
                # a type alias may share the constant's name and precede it
                builders = [
                    declaration.value
                    for declaration in source.find_all(name)
                    if isinstance(declaration, VariableDeclaration) and is_builder(declaration.value)
                ]
                if builders:
                    self._found[name] = builders[0]
                    break
        return self._found[name]

    def _define(self, name: str, expr) -> Schema:
        self.session.in_progress.add(name)
        try:
            schema = self._node(expr)
        finally:
            self.session.in_progress.discard(name)
        return self.session.register(name, schema)

    def _reference(self, name: str) -> Schema:
        """Reference to another named schema, resolving it first if needed."""
        session = self.session
        name = self._prescan(self.schema_dir).get(name, name)
        if name in session.in_progress:
            session.cycle_hits.add(name)
            return Schema.reference(name)
        if name in session.schemas:
            return Schema.reference(name)

        expr = self._find(name, self.schema_dir)
        if expr is not None:
            self._define(name, expr)
            return Schema.reference(name)

        if self.delegate is not None:
            schema = self.delegate.resolve(name)
            if schema is not None:
                registered = session.name_of(schema)
                return Schema.reference(registered) if registered else schema
        logger.debug("Schema %s not found, using an untyped object", name)
        return Schema.untyped()

    # --- expressions --------------------------------------------------------

    def _node(self, expr) -> Schema:
        if isinstance(expr, Identifier):
            return self._reference(expr.name)
        if isinstance(expr, NewExpression) and expr.constructor == "Date":
            return Schema.date_time()
        if not isinstance(expr, CallExpression):
            logger.debug("Unsupported schema expression %s, using an untyped object", expr)
            return Schema.untyped()

        chain = call_chain(expr)
        innermost = chain[-1]
        if _is_z(innermost.callee):
            schema = self._factory(innermost)
            pending = chain[:-1]
        elif isinstance(innermost.callee, Identifier):
            schema = self._reference(innermost.callee.name)
            pending = chain
        else:
            logger.debug("Unsupported schema call %s, using an untyped object", innermost.method)
            return Schema.untyped()

        for call in reversed(pending):
            schema = self._apply(schema, call)
        return schema

    def _factory(self, call: CallExpression) -> Schema:
        method, args = call.method, call.arguments

        if method in ("object", "strictObject", "looseObject"):
            return self._object(args[0] if args else None)
        if method in PRIMITIVE_FACTORIES:
            return Schema.primitive(PRIMITIVE_FACTORIES[method])
        if method == "date":
            return Schema.date_time()
        if method in STRING_FORMATS:
            return Schema.primitive(SchemaKind.STRING, format=STRING_FORMATS[method])
        if method == "bigint":
            return Schema.primitive(SchemaKind.INTEGER, format="int64")
        if method in ("any", "unknown"):
            return Schema.any()
        if method == "array":
            return Schema.array(self._node(args[0]) if args else Schema.any())
        if method == "set":
            items = self._node(args[0]) if args else Schema.any()
            return Schema.array(items).model_copy(update={"unique_items": True})
        if method in ("record", "map"):
            value = self._node(args[-1]) if args else Schema.any()
            return Schema(kind=SchemaKind.OBJECT, additional_properties=value)
        if method == "enum":
            return self._enum(args[0] if args else None)
        if method == "nativeEnum":
            return Schema.primitive(SchemaKind.STRING)
        if method == "literal":
            if args and isinstance(args[0], Literal):
                return Schema.literal(args[0].value)
            return Schema.primitive(SchemaKind.STRING)
        if method == "union":
            return self._union(args[0] if args else None)
        if method == "intersection":
            if len(args) < 2:
                return Schema.untyped()
            return Schema.all_of([self._node(args[0]), self._node(args[1])])
        if method == "discriminatedUnion":
            return self._discriminated(args)
        if method == "tuple":
            return self._tuple(args[0] if args else None)
        if method == "lazy":
            return self._lazy(args[0] if args else None)
        if method in ("custom", "instanceof"):
            return self._custom(call)

        logger.debug("Unknown factory z.%s, using an untyped object", method)
        return Schema.untyped()

    def _object(self, arg) -> Schema:
        if not isinstance(arg, ObjectLiteral):
            return Schema.untyped()
        properties = {}
        required = []
        for key, value in arg.entries:
            properties[key] = self._node(value)
            # a bare identifier is always required; only chain markers make a key optional
            if not self._is_optional(value):
                required.append(key)
        return Schema.object(properties, required)

    @staticmethod
    def _is_optional(expr) -> bool:
        return any(call.method in OPTIONAL_MARKERS for call in call_chain(expr))

    def _enum(self, arg) -> Schema:
        if isinstance(arg, ArrayLiteral):
            values = [element.value for element in arg.elements if isinstance(element, Literal)]
        elif isinstance(arg, ObjectLiteral):
            values = [value.value for _, value in arg.entries if isinstance(value, Literal)]
        else:
            return Schema.primitive(SchemaKind.STRING)
        numeric = bool(values) and isinstance(values[0], (int, float)) and not isinstance(values[0], bool)
        return Schema.enum(values, "number" if numeric else "string")

    def _union(self, arg) -> Schema:
        if not isinstance(arg, ArrayLiteral):
            return Schema.untyped()
        schemas = [self._node(element) for element in arg.elements]

        if len(schemas) == 2 and any(s.is_null() for s in schemas):
            others = [s for s in schemas if not s.is_null()]
            if others:
                return others[0].model_copy(update={"nullable": True})

        if schemas and all(
            s.kind == SchemaKind.ENUM and len(s.values) == 1 and s.enum_type == schemas[0].enum_type
            for s in schemas
        ):
            return Schema.enum([s.values[0] for s in schemas], schemas[0].enum_type)
        return Schema.one_of(schemas)

    def _discriminated(self, args: tuple) -> Schema:
        if len(args) < 2 or not isinstance(args[1], ArrayLiteral):
            return Schema.untyped()
        variants = [self._node(element) for element in args[1].elements]
        return Schema.one_of(variants, discriminator=_string(args[0]))

    def _tuple(self, arg) -> Schema:
        if not isinstance(arg, ArrayLiteral) or not arg.elements:
            return Schema.array(Schema.primitive(SchemaKind.STRING))
        return Schema.array(self._node(arg.elements[0]))

    def _lazy(self, arg) -> Schema:
        if not isinstance(arg, ArrowFunction) or arg.body is None:
            return Schema.untyped()
        if isinstance(arg.body, Identifier):
            return self._reference(arg.body.name)
        return self._node(arg.body)

    @staticmethod
    def _custom(call: CallExpression) -> Schema:
        names = [arg.name for arg in call.type_arguments if isinstance(arg, TypeReference)]
        names += [arg.name for arg in call.arguments if isinstance(arg, Identifier)]
        if any(name in ("File", "Blob") for name in names):
            return Schema.binary()
        if "Date" in names:
            return Schema.date_time()
        return Schema.untyped()

    # --- chained calls ------------------------------------------------------

    def _apply(self, schema: Schema, call: CallExpression) -> Schema:
        method, args = call.method, call.arguments
        first = args[0] if args else None

        if method in OPTIONAL_MARKERS:
            return schema.model_copy(update={"nullable": True})
        if method == "describe":
            text = _string(first)
            return schema.model_copy(update={"description": text}) if text is not None else schema
        if method == "deprecated":
            return schema.model_copy(update={"deprecated": True})
        if method == "default":
            return self._default(schema, first)
        if method in NO_OP_METHODS:
            return schema
        if method in ("min", "max", "length", "gt", "gte", "lt", "lte", "nonempty", "multipleOf", "step"):
            return _bound(schema, method, _number(first))
        if method in ("int", "positive", "nonnegative", "negative", "nonpositive", "safe"):
            return _numeric(schema, method)
        if method in STRING_FORMATS:
            if schema.kind == SchemaKind.STRING:
                return schema.model_copy(update={"format": STRING_FORMATS[method]})
            return schema
        if method in ("regex", "startsWith", "endsWith", "includes"):
            return _pattern(schema, method, first)
        if method in ("extend", "merge"):
            return self._extend(schema, first, method)
        if method in ("pick", "omit"):
            return self._project(schema, method, _mask_keys(first))
        if method in ("partial", "required"):
            return self._optionality(schema, method)
        if method == "array":
            return Schema.array(schema)
        if method == "keyof":
            view = self.session.deref(schema)
            return Schema.enum(list(view.properties) if view is not None else [], "string")
        if method == "or" and first is not None:
            return Schema.one_of([schema, self._node(first)])
        if method == "and" and first is not None:
            return Schema.all_of([schema, self._node(first)])

        logger.debug("Ignoring unknown schema method .%s()", method)
        return schema

    def _default(self, schema: Schema, arg) -> Schema:
        if isinstance(arg, Literal):
            value = arg.value
        elif isinstance(arg, ObjectLiteral):
            value = {key: entry.value for key, entry in arg.entries if isinstance(entry, Literal)}
        else:
            return schema
        return schema.model_copy(update={"default": value, "has_default": True})

    def _object_view(self, schema: Schema) -> Schema | None:
        view = self.session.deref(schema)
        if view is None or view.kind != SchemaKind.OBJECT:
            return None
        return view

    def _extend(self, schema: Schema, arg, method: str) -> Schema:
        extension = self._object(arg) if method == "extend" else self._object_view(self._node(arg))
        base = self._object_view(schema)
        if extension is None:
            return schema
        if base is None:
            logger.debug("Could not resolve base schema for .%s()", method)
            return extension
        merged = merge_objects([base, extension])
        if base.description:
            merged.description = base.description
        return merged

    def _project(self, schema: Schema, method: str, keys: list[str]) -> Schema:
        base = self._object_view(schema)
        if base is None:
            return schema
        if method == "pick":
            names = [name for name in base.properties if name in keys]
        else:
            names = [name for name in base.properties if name not in keys]
        return Schema.object(
            {name: base.properties[name] for name in names},
            [name for name in base.required if name in names],
        )

    def _optionality(self, schema: Schema, method: str) -> Schema:
        base = self._object_view(schema)
        if base is None:
            return schema
        required = list(base.properties) if method == "required" else []
        return base.model_copy(update={"required": required})


def _bound(schema: Schema, method: str, value) -> Schema:
    """Apply a size or value bound relevant to the schema's current kind."""
    kind = schema.kind
    if method == "nonempty":
        if kind == SchemaKind.STRING:
            return schema.model_copy(update={"min_length": 1})
        if kind == SchemaKind.ARRAY:
            return schema.model_copy(update={"min_items": 1})
        return schema
    if value is None:
        return schema

    if kind == SchemaKind.STRING:
        fields = {
            "min": {"min_length": value},
            "max": {"max_length": value},
            "length": {"min_length": value, "max_length": value},
        }
    elif kind in (SchemaKind.NUMBER, SchemaKind.INTEGER):
        fields = {
            "min": {"minimum": value},
            "gte": {"minimum": value},
            "max": {"maximum": value},
            "lte": {"maximum": value},
            "gt": {"minimum": value, "exclusive_minimum": True},
            "lt": {"maximum": value, "exclusive_maximum": True},
            "multipleOf": {"multiple_of": value},
            "step": {"multiple_of": value},
        }
    elif kind == SchemaKind.ARRAY:
        fields = {
            "min": {"min_items": value},
            "max": {"max_items": value},
            "length": {"min_items": value, "max_items": value},
        }
    else:
        return schema
    update = fields.get(method)
    return schema.model_copy(update=update) if update else schema


def _numeric(schema: Schema, method: str) -> Schema:
    if schema.kind not in (SchemaKind.NUMBER, SchemaKind.INTEGER):
        return schema
    updates = {
        "int": {"kind": SchemaKind.INTEGER},
        "positive": {"minimum": 0, "exclusive_minimum": True},
        "nonnegative": {"minimum": 0},
        "negative": {"maximum": 0, "exclusive_maximum": True},
        "nonpositive": {"maximum": 0},
        "safe": {"minimum": -SAFE_INTEGER, "maximum": SAFE_INTEGER},
    }
    return schema.model_copy(update=updates[method])


def _pattern(schema: Schema, method: str, arg) -> Schema:
    if method == "regex":
        if not isinstance(arg, RegexLiteral):
            return schema
        pattern = arg.pattern
    else:
        text = _string(arg)
        if text is None:
            return schema
        pattern = escape_pattern(text)
        if method == "startsWith":
            pattern = "^" + pattern
        elif method == "endsWith":
            pattern = pattern + "$"
    return schema.model_copy(update={"pattern": pattern})
