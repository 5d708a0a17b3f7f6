import pytest

from netsuite_mcp.schematree import Schema, SchemaError, prepare_dummy_schema


class DictResolver:
    def __init__(self, schemas):
        self.schemas = schemas
        self.calls = []

    def resolve(self, ref):
        self.calls.append(ref)
        if ref not in self.schemas:
            raise KeyError(ref)
        return self.schemas[ref]


class RecordingWalker:
    def __init__(self):
        self.seen = []

    def walk(self, schema):
        self.seen.append(schema)


def test_from_dict_string_type():
    schema = Schema.from_dict({"type": "string", "format": "date"})
    assert schema.type == ["string"]
    assert schema.format == "date"
    assert schema.properties is None


def test_from_dict_nullable_adds_null():
    schema = Schema.from_dict({"type": "string", "nullable": True})
    assert sorted(schema.type) == ["null", "string"]


def test_from_dict_nullable_false_keeps_type():
    schema = Schema.from_dict({"type": "integer", "nullable": False})
    assert schema.type == ["integer"]


def test_from_dict_list_type_deduplicated():
    schema = Schema.from_dict({"type": ["string", "null"], "nullable": True})
    assert sorted(schema.type) == ["null", "string"]


def test_from_dict_bad_type_raises():
    with pytest.raises(SchemaError, match='unexpected type for property "type"'):
        Schema.from_dict({"type": 5})


def test_from_dict_bad_nullable_raises():
    with pytest.raises(SchemaError):
        Schema.from_dict({"type": "string", "nullable": "yes"})


def test_from_dict_non_object_raises():
    with pytest.raises(SchemaError):
        Schema.from_dict(["not", "an", "object"])


def test_from_dict_empty_properties_become_none():
    schema = Schema.from_dict({"type": "object", "properties": {}})
    assert schema.properties is None


def test_from_dict_nested_structure():
    data = {
        "type": "object",
        "properties": {
            "tags": {"type": "array", "items": {"type": "string"}},
            "link": {"$ref": "/customer"},
            "choice": {"oneOf": [{"type": "string"}, {"type": "integer"}]},
        },
    }
    schema = Schema.from_dict(data)
    assert schema.properties["tags"].items.type == ["string"]
    assert schema.properties["link"].ref == "/customer"
    assert schema.properties["link"].type == []
    assert [alt.type for alt in schema.properties["choice"].one_of] == [
        ["string"],
        ["integer"],
    ]


def test_from_dict_ignores_id():
    schema = Schema.from_dict({"type": "object", "$id": "ignored"})
    assert schema.id == ""


def test_to_dict_round_trip():
    data = {
        "type": "object",
        "properties": {
            "name": {"type": "string", "format": "email"},
            "tags": {"type": "array", "items": {"type": "string"}},
            "ref": {"type": [], "$ref": "/other"},
        },
    }
    assert Schema.from_dict(data).to_dict() == data


def test_to_dict_multiple_types_is_list():
    schema = prepare_dummy_schema(["string", "null"])
    assert schema.to_dict() == {"type": ["string", "null"]}


def test_to_dict_includes_id_and_one_of():
    schema = Schema(type=["object"], id="x", one_of=[Schema(type=["string"])])
    assert schema.to_dict() == {
        "type": "object",
        "oneOf": [{"type": "string"}],
        "$id": "x",
    }


@pytest.mark.parametrize(
    "types, expected",
    [
        ([], ""),
        (["null"], "null"),
        (["string"], "string"),
        (["string", "null"], "string"),
        (["string", "integer"], ""),
    ],
)
def test_base_type(types, expected):
    assert prepare_dummy_schema(types).base_type() == expected


def test_prepare_dummy_schema_fields():
    schema = prepare_dummy_schema(["object"])
    assert schema == Schema(type=["object"])


def test_resolve_references_replaces_ref():
    target = Schema(
        type=["object"],
        id="/customer",
        properties={"name": Schema(type=["string"])},
    )
    root = Schema.from_dict(
        {"type": "object", "properties": {"customer": {"$ref": "/customer"}}}
    )
    resolver = DictResolver({"/customer": target})
    root.resolve_references(resolver)
    resolved = root.properties["customer"]
    assert resolved.ref == ""
    assert resolved.id == "/customer"
    assert resolved.type == ["object"]
    assert resolved.properties is target.properties
    assert resolver.calls == ["/customer"]


def test_resolve_references_inside_array_items_and_nested():
    inner = Schema(type=["string"], id="/inner")
    root = Schema.from_dict(
        {
            "type": "object",
            "properties": {
                "list": {"type": "array", "items": {"$ref": "/inner"}},
                "nested": {
                    "type": "object",
                    "properties": {"deep": {"$ref": "/inner"}},
                },
            },
        }
    )
    resolver = DictResolver({"/inner": inner})
    root.resolve_references(resolver)
    assert root.properties["list"].items.id == "/inner"
    assert root.properties["nested"].properties["deep"].type == ["string"]
    assert len(resolver.calls) == 2


def test_resolve_references_in_one_of():
    target = Schema(type=["integer"], id="/num")
    root = Schema.from_dict(
        {
            "type": "object",
            "properties": {"choice": {"oneOf": [{"$ref": "/num"}, {"type": "string"}]}},
        }
    )
    root.resolve_references(DictResolver({"/num": target}))
    alternatives = root.properties["choice"].one_of
    assert alternatives[0].type == ["integer"]
    assert alternatives[1].type == ["string"]


def test_resolver_failure_is_wrapped():
    root = Schema.from_dict(
        {"type": "object", "properties": {"link": {"$ref": "/missing"}}}
    )
    with pytest.raises(SchemaError, match='failed to resolve ref "/missing"') as info:
        root.resolve_references(DictResolver({}))
    assert "failed to resolve json schema reference" in str(info.value)


def test_walk_missing_type_raises():
    root = Schema.from_dict({"type": "object", "properties": {"bad": {}}})
    with pytest.raises(SchemaError, match='key "type" not found on property "bad"'):
        root.walk(RecordingWalker())


def test_walk_array_without_items_raises():
    root = Schema.from_dict(
        {"type": "object", "properties": {"list": {"type": "array"}}}
    )
    with pytest.raises(SchemaError, match='key "items" not found on property "list"'):
        root.walk(RecordingWalker())


def test_walk_visits_every_sub_schema_but_not_root():
    root = Schema.from_dict(
        {
            "type": "object",
            "properties": {
                "a": {"type": "string"},
                "b": {"type": "array", "items": {"type": "integer"}},
                "c": {"type": "object", "properties": {"d": {"type": "boolean"}}},
            },
        }
    )
    walker = RecordingWalker()
    root.walk(walker)
    assert root not in walker.seen
    seen_ids = {id(s) for s in walker.seen}
    expected = {
        id(root.properties["a"]),
        id(root.properties["b"]),
        id(root.properties["b"].items),
        id(root.properties["c"]),
        id(root.properties["c"].properties["d"]),
    }
    assert seen_ids == expected


def test_walk_without_properties_does_nothing():
    walker = RecordingWalker()
    prepare_dummy_schema(["string"]).walk(walker)
    assert walker.seen == []