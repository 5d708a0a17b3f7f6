"""A small JSON-schema tree with reference resolution and traversal."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

TYPE_ARRAY = "array"
TYPE_OBJECT = "object"
TYPE_NULL = "null"


class SchemaError(ValueError):
    """Raised when a schema cannot be parsed, walked or resolved."""


class ReferenceResolver(Protocol):
    """Resolves a reference to an external schema."""

    def resolve(self, ref: str) -> Schema:
        """Return the schema that ``ref`` points to."""


class SchemaWalker(Protocol):
    """Visits sub-schemas during :meth:`Schema.walk` and may mutate them."""

    def walk(self, schema: Schema) -> None:
        """Visit one sub-schema."""


def _optional_string(value: Any, key: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SchemaError(f'failed to unmarshal JSON: "{key}" must be a string')
    return value


@dataclass
class Schema:
    """One node of a JSON schema."""

    type: list[str] = field(default_factory=list)
    properties: Optional[dict[str, Schema]] = None
    items: Optional[Schema] = None
    format: str = ""
    one_of: Optional[list[Schema]] = None
    id: str = ""
    ref: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Schema:
        """Build a schema from decoded JSON, folding ``nullable`` into the type."""
        schema = cls()
        if data is None:
            return schema
        if not isinstance(data, Mapping):
            raise SchemaError("failed to unmarshal JSON: schema must be an object")

        if "$ref" in data:
            schema.ref = _optional_string(data["$ref"], "$ref")

        types: dict[str, None] = {}
        if "type" in data:
            declared = data["type"]
            if isinstance(declared, str):
                types[declared] = None
            elif isinstance(declared, list) and all(isinstance(t, str) for t in declared):
                types.update(dict.fromkeys(declared))
            else:
                raise SchemaError('unexpected type for property "type"')

        if "nullable" in data:
            nullable = data["nullable"]
            if nullable is not None and not isinstance(nullable, bool):
                raise SchemaError('failed to unmarshal JSON: "nullable" must be a boolean')
            if nullable:
                types[TYPE_NULL] = None
        schema.type = list(types)

        if "properties" in data:
            properties = data["properties"]
            if properties is not None:
                if not isinstance(properties, Mapping):
                    raise SchemaError('failed to unmarshal JSON: "properties" must be an object')
                parsed = {key: cls.from_dict(value) for key, value in properties.items()}
                if parsed:
                    schema.properties = parsed

        if "items" in data:
            schema.items = cls.from_dict(data["items"])

        if "format" in data:
            schema.format = _optional_string(data["format"], "format")

        if "oneOf" in data:
            one_of = data["oneOf"]
            if one_of is not None:
                if not isinstance(one_of, list):
                    raise SchemaError('failed to unmarshal JSON: "oneOf" must be an array')
                schema.one_of = [cls.from_dict(item) for item in one_of]

        return schema

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the schema, omitting empty fields."""
        result: dict[str, Any] = {
            "type": self.type[0] if len(self.type) == 1 else list(self.type)
        }
        if self.properties:
            result["properties"] = {
                name: child.to_dict() for name, child in self.properties.items()
            }
        if self.items is not None:
            result["items"] = self.items.to_dict()
        if self.format:
            result["format"] = self.format
        if self.one_of:
            result["oneOf"] = [alternative.to_dict() for alternative in self.one_of]
        if self.id:
            result["$id"] = self.id
        if self.ref:
            result["$ref"] = self.ref
        return result

    def base_type(self) -> str:
        """Return the single non-null type, ``"null"``, or ``""`` if ambiguous."""
        if not self.type:
            return ""
        non_null = [t for t in self.type if t != TYPE_NULL]
        if not non_null:
            return TYPE_NULL
        if len(non_null) == 1:
            return non_null[0]
        return ""

    def resolve_references(self, resolver: ReferenceResolver) -> None:
        """Replace every ``$ref`` in the tree with the schema it refers to."""
        self.walk(_ReferenceResolvingWalker(resolver))

    def _resolve_reference(self, resolver: ReferenceResolver) -> None:
        ref = self.ref
        if not ref:
            return
        try:
            target = resolver.resolve(ref)
        except Exception as exc:
            raise SchemaError(
                f'failed to resolve ref "{ref}" using resolver: {exc}'
            ) from exc
        self.ref = ""
        self.id = target.id
        self.type = target.type
        self.properties = target.properties
        self.items = target.items

    def walk(self, walker: SchemaWalker) -> None:
        """Run ``walker`` on every sub-schema reachable through properties."""
        stack: list[Schema] = [self]
        while stack:
            node = stack.pop()
            if node.properties is None:
                continue
            for name, child in node.properties.items():
                _visit(walker, child)

                if child.one_of:
                    for alternative in child.one_of:
                        _visit(walker, alternative)
                        stack.append(alternative)
                    continue

                kind = child.base_type()
                if not kind:
                    raise SchemaError(f'key "type" not found on property "{name}"')

                if kind == TYPE_ARRAY:
                    if child.items is None:
                        raise SchemaError(f'key "items" not found on property "{name}"')
                    _visit(walker, child.items)
                    stack.append(child.items)
                elif kind == TYPE_OBJECT:
                    stack.append(child)


def _visit(walker: SchemaWalker, schema: Schema) -> None:
    try:
        walker.walk(schema)
    except Exception as exc:
        raise SchemaError(f"failed to resolve json schema reference: {exc}") from exc


class _ReferenceResolvingWalker:
    def __init__(self, resolver: ReferenceResolver) -> None:
        self._resolver = resolver

    def walk(self, schema: Schema) -> None:
        schema._resolve_reference(self._resolver)


def prepare_dummy_schema(types: Iterable[str]) -> Schema:
    """Return a bare schema carrying only the given types."""
    return Schema(type=list(types))