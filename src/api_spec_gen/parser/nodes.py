"""Syntax shapes understood by the schema resolvers.

The syntax provider turns a parsed source file into these plain dataclasses,
so the resolvers never touch parser-specific node objects. Anything outside
the recognised subset is kept as an ``Unsupported*`` node carrying its source
text for diagnostics.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union


# --- type expressions -------------------------------------------------------


@dataclass(frozen=True)
class KeywordType:
    """A predefined type such as ``string``, ``number`` or ``null``."""

    name: str


@dataclass(frozen=True)
class LiteralType:
    value: Any  # str / int / float / bool


@dataclass(frozen=True)
class TypeReference:
    """A named type, optionally with type arguments: ``User``, ``Pick<User, "id">``."""

    name: str
    arguments: tuple = ()


@dataclass(frozen=True)
class ArrayType:
    element: "TypeNode"


@dataclass(frozen=True)
class TupleType:
    elements: tuple = ()


@dataclass(frozen=True)
class UnionType:
    members: tuple = ()


@dataclass(frozen=True)
class IntersectionType:
    members: tuple = ()


@dataclass(frozen=True)
class PropertySignature:
    name: str
    type: "TypeNode | None"
    optional: bool = False
    description: str | None = None


@dataclass(frozen=True)
class ObjectType:
    members: tuple = ()
    index_type: "TypeNode | None" = None


@dataclass(frozen=True)
class TypeQuery:
    """``typeof Name``."""

    name: str


@dataclass(frozen=True)
class UnsupportedType:
    text: str


TypeNode = Union[
    KeywordType,
    LiteralType,
    TypeReference,
    ArrayType,
    TupleType,
    UnionType,
    IntersectionType,
    ObjectType,
    TypeQuery,
    UnsupportedType,
]


# --- value expressions ------------------------------------------------------


@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class Literal:
    value: Any  # str / int / float / bool / None


@dataclass(frozen=True)
class RegexLiteral:
    pattern: str
    flags: str = ""


@dataclass(frozen=True)
class ObjectLiteral:
    entries: tuple = ()  # ((key, Expression), ...) in declaration order


@dataclass(frozen=True)
class ArrayLiteral:
    elements: tuple = ()


@dataclass(frozen=True)
class CallExpression:
    """A call, flattened to ``callee.method(arguments)``.

    ``z.string()`` has callee ``Identifier("z")``; ``z.string().min(1)`` has the
    inner call as callee; a plain ``lazy(...)`` call has no callee.
    """

    callee: "Expression | None"
    method: str
    arguments: tuple = ()
    type_arguments: tuple = ()


@dataclass(frozen=True)
class PropertyAccess:
    target: "Expression"
    name: str


@dataclass(frozen=True)
class ArrowFunction:
    body: "Expression | None"


@dataclass(frozen=True)
class NewExpression:
    constructor: str
    arguments: tuple = ()


@dataclass(frozen=True)
class UnsupportedExpression:
    text: str


Expression = Union[
    Identifier,
    Literal,
    RegexLiteral,
    ObjectLiteral,
    ArrayLiteral,
    CallExpression,
    PropertyAccess,
    ArrowFunction,
    NewExpression,
    UnsupportedExpression,
]


# --- declarations -----------------------------------------------------------


@dataclass(frozen=True)
class InterfaceDeclaration:
    name: str
    body: ObjectType
    extends: tuple = ()
    type_parameters: tuple = ()
    exported: bool = False


@dataclass(frozen=True)
class TypeAliasDeclaration:
    name: str
    value: TypeNode
    type_parameters: tuple = ()
    exported: bool = False


@dataclass(frozen=True)
class EnumMember:
    name: str
    value: Any = None


@dataclass(frozen=True)
class EnumDeclaration:
    name: str
    members: tuple = ()
    exported: bool = False


@dataclass(frozen=True)
class VariableDeclaration:
    name: str
    value: Expression | None
    exported: bool = False


Declaration = Union[InterfaceDeclaration, TypeAliasDeclaration, EnumDeclaration, VariableDeclaration]


@dataclass(frozen=True)
class RouteHandler:
    """An exported binding named after an HTTP verb, with its leading comment block."""

    name: str
    comment: str = ""
    line: int = 0


@dataclass
class SourceFile:
    path: Path
    declarations: list = field(default_factory=list)
    handlers: list = field(default_factory=list)

    def find(self, name: str) -> Declaration | None:
        for declaration in self.declarations:
            if declaration.name == name:
                return declaration
        return None

    def find_all(self, name: str) -> list:
        return [declaration for declaration in self.declarations if declaration.name == name]


# --- helpers shared by both resolvers ---------------------------------------

INFER_NAMES = {"z.infer", "z.input", "z.output", "infer", "input", "output"}


def infer_target(node: TypeNode) -> str | None:
    """Return ``X`` for ``z.infer<typeof X>``, otherwise None."""
    if not isinstance(node, TypeReference) or node.name not in INFER_NAMES:
        return None
    if len(node.arguments) != 1 or not isinstance(node.arguments[0], TypeQuery):
        return None
    return node.arguments[0].name


def call_chain(expr: Expression) -> list[CallExpression]:
    """Calls of a fluent chain, outermost first."""
    chain = []
    while isinstance(expr, CallExpression):
        chain.append(expr)
        expr = expr.callee
    return chain


def chain_root(expr: Expression) -> Expression | None:
    """The expression the innermost call of a chain is made on."""
    while isinstance(expr, CallExpression):
        if expr.callee is None:
            return None
        expr = expr.callee
    return expr
