"""Syntax tree provider backed by tree-sitter.

Parses TypeScript/TSX source text and converts the bounded set of shapes the
resolvers care about into :mod:`api_spec_gen.parser.nodes` objects.
"""

import logging
import re
from pathlib import Path

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from .nodes import (
    ArrayLiteral,
    ArrayType,
    ArrowFunction,
    CallExpression,
    EnumDeclaration,
    EnumMember,
    Identifier,
    InterfaceDeclaration,
    IntersectionType,
    KeywordType,
    Literal,
    LiteralType,
    NewExpression,
    ObjectLiteral,
    ObjectType,
    PropertyAccess,
    PropertySignature,
    RegexLiteral,
    RouteHandler,
    SourceFile,
    TupleType,
    TypeAliasDeclaration,
    TypeQuery,
    TypeReference,
    UnionType,
    UnsupportedExpression,
    UnsupportedType,
    VariableDeclaration,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

TS_LANGUAGE = Language(tree_sitter_typescript.language_typescript())
TSX_LANGUAGE = Language(tree_sitter_typescript.language_tsx())

_WRAPPER_EXPRESSIONS = {
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "await_expression",
}


class SourceSyntaxError(Exception):
    """Raised when a source file contains syntax the grammar rejects."""


def parse_source(text: str, path: Path) -> SourceFile:
    """Parse one source file into its declarations and route handlers."""
    language = TSX_LANGUAGE if path.suffix in (".tsx", ".jsx") else TS_LANGUAGE
    tree = Parser(language).parse(text.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        line = _first_error_line(root)
        raise SourceSyntaxError(f"{path}: syntax error near line {line}")

    source = SourceFile(path=path)
    for child in root.named_children:
        if child.type == "export_statement":
            declaration = child.child_by_field_name("declaration")
            if declaration is not None:
                _collect(declaration, source, exported=True)
                _collect_handlers(child, declaration, source)
        else:
            _collect(child, source, exported=False)
    return source


def _first_error_line(node: Node) -> int:
    if node.type == "ERROR" or node.is_missing:
        return node.start_point[0] + 1
    for child in node.children:
        if child.has_error:
            return _first_error_line(child)
    return node.start_point[0] + 1


# --- declarations -----------------------------------------------------------


def _collect(node: Node, source: SourceFile, exported: bool) -> None:
    kind = node.type
    if kind == "interface_declaration":
        source.declarations.append(_interface(node, exported))
    elif kind == "type_alias_declaration":
        source.declarations.append(
            TypeAliasDeclaration(
                name=_text(node.child_by_field_name("name")),
                value=_type(node.child_by_field_name("value")),
                type_parameters=_type_parameters(node),
                exported=exported,
            )
        )
    elif kind == "enum_declaration":
        source.declarations.append(_enum(node, exported))
    elif kind in ("lexical_declaration", "variable_declaration"):
        for declarator in _named(node):
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is None or name.type != "identifier":
                continue
            value = declarator.child_by_field_name("value")
            source.declarations.append(
                VariableDeclaration(
                    name=_text(name),
                    value=_expression(value) if value is not None else None,
                    exported=exported,
                )
            )


def _collect_handlers(statement: Node, declaration: Node, source: SourceFile) -> None:
    names = []
    if declaration.type in ("function_declaration", "generator_function_declaration"):
        names.append(_text(declaration.child_by_field_name("name")))
    elif declaration.type in ("lexical_declaration", "variable_declaration"):
        for declarator in _named(declaration):
            if declarator.type == "variable_declarator":
                names.append(_text(declarator.child_by_field_name("name")))

    comment = _leading_comment(statement)
    for name in names:
        if name in HTTP_METHODS:
            source.handlers.append(
                RouteHandler(name=name, comment=comment, line=statement.start_point[0] + 1)
            )


def _leading_comment(node: Node) -> str:
    comments = []
    sibling = node.prev_sibling
    while sibling is not None and sibling.type == "comment":
        comments.append(_text(sibling))
        sibling = sibling.prev_sibling
    return "\n".join(reversed(comments))


def _interface(node: Node, exported: bool) -> InterfaceDeclaration:
    extends = []
    for child in _named(node):
        if child.type in ("extends_type_clause", "extends_clause"):
            extends.extend(_type(item) for item in _named(child))
    body = node.child_by_field_name("body")
    return InterfaceDeclaration(
        name=_text(node.child_by_field_name("name")),
        body=_object_type(body) if body is not None else ObjectType(),
        extends=tuple(extends),
        type_parameters=_type_parameters(node),
        exported=exported,
    )


def _type_parameters(node: Node) -> tuple:
    parameters = node.child_by_field_name("type_parameters")
    if parameters is None:
        return ()
    names = []
    for parameter in _named(parameters):
        name = parameter.child_by_field_name("name")
        names.append(_text(name if name is not None else parameter))
    return tuple(names)


def _enum(node: Node, exported: bool) -> EnumDeclaration:
    members = []
    body = node.child_by_field_name("body")
    for member in _named(body) if body is not None else []:
        if member.type == "enum_assignment":
            value = _expression(member.child_by_field_name("value"))
            members.append(
                EnumMember(
                    name=_property_name(member.child_by_field_name("name")),
                    value=value.value if isinstance(value, Literal) else None,
                )
            )
        else:
            members.append(EnumMember(name=_property_name(member)))
    return EnumDeclaration(
        name=_text(node.child_by_field_name("name")),
        members=tuple(members),
        exported=exported,
    )


# --- type expressions -------------------------------------------------------


def _type(node: Node | None):
    if node is None:
        return KeywordType("any")
    kind = node.type

    if kind in ("type_annotation", "parenthesized_type", "readonly_type"):
        inner = _named(node)
        return _type(inner[0]) if inner else KeywordType("any")
    if kind == "predefined_type":
        return KeywordType(_text(node))
    if kind == "type_identifier":
        name = _text(node)
        if name in ("undefined", "null"):
            return KeywordType(name)
        return TypeReference(name)
    if kind == "nested_type_identifier":
        return TypeReference(_compact(node))
    if kind == "generic_type":
        arguments = node.child_by_field_name("type_arguments")
        return TypeReference(
            _compact(node.child_by_field_name("name")),
            tuple(_type(arg) for arg in _named(arguments)) if arguments is not None else (),
        )
    if kind in ("object_type", "interface_body"):
        return _object_type(node)
    if kind == "array_type":
        return ArrayType(_type(_named(node)[0]))
    if kind == "tuple_type":
        return TupleType(tuple(_tuple_member(member) for member in _named(node)))
    if kind == "union_type":
        return UnionType(tuple(_flatten(node, "union_type")))
    if kind == "intersection_type":
        return IntersectionType(tuple(_flatten(node, "intersection_type")))
    if kind == "literal_type":
        return _literal_type(_named(node)[0])
    if kind == "type_query":
        return TypeQuery(_compact(_named(node)[0]))
    if kind == "template_literal_type":
        return KeywordType("string")
    return UnsupportedType(_text(node))


def _flatten(node: Node, kind: str) -> list:
    members = []
    for child in _named(node):
        if child.type == kind:
            members.extend(_flatten(child, kind))
        else:
            members.append(_type(child))
    return members


def _tuple_member(node: Node):
    if node.type in ("required_parameter", "optional_parameter"):
        return _type(node.child_by_field_name("type"))
    if node.type in ("optional_type", "rest_type"):
        return _type(_named(node)[0])
    return _type(node)


def _literal_type(node: Node):
    kind = node.type
    if kind in ("null", "undefined"):
        return KeywordType(kind)
    if kind == "true":
        return LiteralType(True)
    if kind == "false":
        return LiteralType(False)
    if kind == "string":
        return LiteralType(_string_value(node))
    if kind == "number":
        return LiteralType(_number(_text(node)))
    if kind == "unary_expression":
        try:
            return LiteralType(_number(_compact(node)))
        except ValueError:
            pass
    return UnsupportedType(_text(node))


def _object_type(node: Node) -> ObjectType:
    members = []
    index_type = None
    for child in _named(node):
        if child.type == "property_signature":
            name = child.child_by_field_name("name")
            members.append(
                PropertySignature(
                    name=_property_name(name),
                    type=_type(child.child_by_field_name("type")),
                    optional=any(token.type == "?" for token in child.children),
                    description=_member_description(child),
                )
            )
        elif child.type == "index_signature":
            index_type = _type(child.child_by_field_name("type"))
    return ObjectType(members=tuple(members), index_type=index_type)


def _member_description(member: Node) -> str | None:
    """Trailing same-line comment of a member, else its ``/** */`` doc comment."""
    row = member.end_point[0]
    sibling = member.next_sibling
    while sibling is not None and sibling.start_point[0] == row:
        if sibling.type == "comment":
            return _comment_text(_text(sibling))
        if sibling.is_named:
            break
        sibling = sibling.next_sibling

    sibling = member.prev_sibling
    while sibling is not None and not sibling.is_named:
        sibling = sibling.prev_sibling
    if sibling is not None and sibling.type == "comment" and _text(sibling).startswith("/**"):
        return _comment_text(_text(sibling))
    return None


def _comment_text(raw: str) -> str | None:
    if raw.startswith("//"):
        text = raw[2:]
    else:
        text = raw.removeprefix("/**").removeprefix("/*").removesuffix("*/")
        text = " ".join(line.strip().lstrip("*").strip() for line in text.splitlines())
    text = text.strip()
    return text or None


# --- value expressions ------------------------------------------------------


def _expression(node: Node | None):
    if node is None:
        return UnsupportedExpression("")
    kind = node.type

    if kind in _WRAPPER_EXPRESSIONS:
        inner = _named(node)
        return _expression(inner[0]) if inner else UnsupportedExpression(_text(node))
    if kind in ("identifier", "shorthand_property_identifier"):
        name = _text(node)
        return Literal(None) if name == "null" else Identifier(name)
    if kind == "undefined":
        return Identifier("undefined")
    if kind == "string":
        return Literal(_string_value(node))
    if kind == "template_string":
        if any(child.type == "template_substitution" for child in node.named_children):
            return UnsupportedExpression(_text(node))
        return Literal(_text(node)[1:-1])
    if kind == "number":
        return Literal(_number(_text(node)))
    if kind == "true":
        return Literal(True)
    if kind == "false":
        return Literal(False)
    if kind == "null":
        return Literal(None)
    if kind == "regex":
        flags = node.child_by_field_name("flags")
        return RegexLiteral(
            pattern=_text(node.child_by_field_name("pattern")),
            flags=_text(flags) if flags is not None else "",
        )
    if kind == "unary_expression":
        operator = node.child_by_field_name("operator")
        argument = _expression(node.child_by_field_name("argument"))
        if (
            operator is not None
            and _text(operator) == "-"
            and isinstance(argument, Literal)
            and isinstance(argument.value, (int, float))
            and not isinstance(argument.value, bool)
        ):
            return Literal(-argument.value)
        return UnsupportedExpression(_text(node))
    if kind == "object":
        return _object_literal(node)
    if kind == "array":
        return ArrayLiteral(tuple(_expression(element) for element in _named(node)))
    if kind == "call_expression":
        return _call(node)
    if kind == "member_expression":
        return PropertyAccess(
            target=_expression(node.child_by_field_name("object")),
            name=_text(node.child_by_field_name("property")),
        )
    if kind == "arrow_function":
        return ArrowFunction(_arrow_body(node.child_by_field_name("body")))
    if kind == "new_expression":
        arguments = node.child_by_field_name("arguments")
        return NewExpression(
            constructor=_compact(node.child_by_field_name("constructor")),
            arguments=tuple(_expression(arg) for arg in _named(arguments)) if arguments is not None else (),
        )
    return UnsupportedExpression(_text(node))


def _call(node: Node):
    function = node.child_by_field_name("function")
    arguments = node.child_by_field_name("arguments")
    type_arguments = node.child_by_field_name("type_arguments")
    args = ()
    if arguments is not None and arguments.type == "arguments":
        args = tuple(_expression(arg) for arg in _named(arguments))
    type_args = tuple(_type(arg) for arg in _named(type_arguments)) if type_arguments is not None else ()

    if function is not None and function.type == "member_expression":
        return CallExpression(
            callee=_expression(function.child_by_field_name("object")),
            method=_text(function.child_by_field_name("property")),
            arguments=args,
            type_arguments=type_args,
        )
    if function is not None and function.type == "identifier":
        return CallExpression(callee=None, method=_text(function), arguments=args, type_arguments=type_args)
    return UnsupportedExpression(_text(node))


def _arrow_body(body: Node | None):
    if body is None:
        return None
    if body.type != "statement_block":
        return _expression(body)
    for statement in _named(body):
        if statement.type == "return_statement":
            value = _named(statement)
            return _expression(value[0]) if value else None
    return None


def _object_literal(node: Node) -> ObjectLiteral:
    entries = []
    for child in _named(node):
        if child.type == "pair":
            key = child.child_by_field_name("key")
            if key.type == "computed_property_name":
                continue
            entries.append((_property_name(key), _expression(child.child_by_field_name("value"))))
        elif child.type == "shorthand_property_identifier":
            name = _text(child)
            entries.append((name, Identifier(name)))
    return ObjectLiteral(tuple(entries))


# --- small helpers ----------------------------------------------------------


def _named(node: Node) -> list[Node]:
    return [child for child in node.named_children if child.type != "comment"]


def _text(node: Node | None) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8")


def _compact(node: Node | None) -> str:
    return re.sub(r"\s+", "", _text(node))


def _property_name(node: Node | None) -> str:
    if node is None:
        return ""
    if node.type == "string":
        return _string_value(node)
    return _text(node)


def _string_value(node: Node) -> str:
    raw = _text(node)
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "'\"`":
        raw = raw[1:-1]
    return re.sub(r"\\(.)", r"\1", raw)


def _number(text: str) -> int | float:
    cleaned = text.replace("_", "").removesuffix("n")
    try:
        return int(cleaned, 0)
    except ValueError:
        return float(cleaned)
