"""The NameResolver capability and ordered fallback across resolvers."""

import logging
from pathlib import Path
from typing import Protocol

from .model import Schema
from .session import ResolutionSession
from .typescript import TypeScriptResolver
from .zod import ZodResolver

logger = logging.getLogger(__name__)


class NameResolver(Protocol):
    def resolve(self, name: str, root: Path | None = None) -> Schema | None:
        """Definition of ``name``, or None when this resolver does not know it."""


class ResolverChain:
    """Tries each resolver in order; an unknown name degrades to an open object."""

    def __init__(self, resolvers: list[NameResolver], session: ResolutionSession):
        self.resolvers = resolvers
        self.session = session

    def resolve(self, name: str, root: Path | None = None) -> Schema:
        for resolver in self.resolvers:
            schema = resolver.resolve(name, root)
            if schema is not None:
                return schema
        logger.debug("Type %s not found, using an untyped object", name)
        return Schema.untyped()

    def reference_or_inline(self, schema: Schema) -> dict:
        """``$ref`` to a registered definition, otherwise the schema inline."""
        name = self.session.name_of(schema)
        if name:
            return Schema.reference(name).to_openapi()
        return schema.to_openapi()


def build_resolvers(
    session: ResolutionSession,
    schema_dir: Path,
    api_dir: Path,
    schema_type: str = "typescript",
) -> ResolverChain:
    """Both resolvers wired to each other, ordered by the configured schema type."""
    structural = TypeScriptResolver(session, schema_dir)
    builder = ZodResolver(session, schema_dir, api_dir=api_dir)
    structural.delegate = builder
    builder.delegate = structural

    if schema_type == "zod":
        return ResolverChain([builder, structural], session)
    return ResolverChain([structural, builder], session)
