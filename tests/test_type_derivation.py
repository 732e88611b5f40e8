from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional

import pytest
from graphql import GraphQLNonNull, GraphQLScalarType, get_nullable_type, is_enum_type, print_type
from pydantic import BaseModel, ConfigDict, Field, computed_field

from silkql import UnsupportedSchemaError, WeaverConfig, WeaverContext, get_graphql_input_type, get_graphql_type, meta, silk


class Profile(BaseModel):
    name: str
    nickname: Optional[str]
    bio: str = "n/a"
    age: Optional[int] = None
    tags: List[str]
    scores: List[Optional[int]]
    forced: Annotated[Optional[str], meta(nullable=False)]


class Node(BaseModel):
    name: str
    children: List['Node'] = []


Node.model_rebuild()


class Employee(BaseModel):
    name: str
    manager: Optional['Employee'] = None


Employee.model_rebuild()


class Color(Enum):
    RED = 'red'
    GREEN = 'green'


class Paint(BaseModel):
    color: Color
    shades: List[Color] = []


class Book(BaseModel):
    isbn: Annotated[str, meta(name="ISBN")]
    title: str = Field(description="Title on the cover")
    sales: Annotated[int, meta(hidden=True)] = 0
    internal: str = Field("x", exclude=True)

    @computed_field
    @property
    def slug(self) -> str:
        return self.title.lower().replace(' ', '-')


class Kitty(BaseModel):
    model_config = ConfigDict(title="Cat: a small feline: purrs")

    name: str


def test_nullability_mapping():
    t = get_graphql_type(Profile)
    assert isinstance(t, GraphQLNonNull)
    assert print_type(t.of_type) == (
        "type Profile {\n"
        "  name: String!\n"
        "  nickname: String\n"
        "  bio: String\n"
        "  age: Int\n"
        "  tags: [String!]!\n"
        "  scores: [Int]!\n"
        "  forced: String!\n"
        "}"
    )


def test_optional_and_nullable_collapse_to_one_flag():
    # Optional key (default) and nullable value both end up as a plain nullable field
    fields = get_nullable_type(get_graphql_type(Profile)).fields
    assert str(fields['nickname'].type) == str(fields['bio'].type) == 'String'


def test_input_type_suffix_and_out_names():
    t = get_nullable_type(get_graphql_input_type(Profile))
    assert t.name == 'ProfileInput'
    assert set(t.fields) == {'name', 'nickname', 'bio', 'age', 'tags', 'scores', 'forced'}
    assert str(t.fields['tags'].type) == '[String!]!'


def test_list_silk_wraps_element():
    t = get_graphql_type(silk.list(Paint))
    assert str(t) == '[Paint!]!'
    assert str(get_graphql_type(silk.nullable(Paint))) == 'Paint'


def test_same_native_yields_same_object_within_a_context():
    ctx = WeaverContext()
    a = get_nullable_type(get_graphql_type(Profile, ctx))
    b = get_nullable_type(get_graphql_type(Profile, ctx))
    assert a is b
    # A fresh context derives a fresh object
    c = get_nullable_type(get_graphql_type(Profile))
    assert c is not a
    assert print_type(c) == print_type(a)


def test_self_reference_is_reference_equal():
    node = get_nullable_type(get_graphql_type(Node))
    children = node.fields['children'].type
    assert str(children) == '[Node!]'
    assert children.of_type.of_type is node


def test_optional_self_reference_is_reference_equal():
    employee = get_nullable_type(get_graphql_type(Employee))
    manager = employee.fields['manager'].type
    # optional, so the field type is the object type itself
    assert manager is employee
    assert print_type(employee) == "type Employee {\n  name: String!\n  manager: Employee\n}"


def test_enum_is_shared_between_fields():
    paint = get_nullable_type(get_graphql_type(Paint))
    color = get_nullable_type(paint.fields['color'].type)
    assert is_enum_type(color)
    assert list(color.values) == ['RED', 'GREEN']
    assert paint.fields['shades'].type.of_type.of_type is color


def test_metadata_names_hidden_and_read_only_fields():
    out = get_nullable_type(get_graphql_type(Book))
    assert list(out.fields) == ['ISBN', 'title', 'slug']
    assert out.fields['title'].description == "Title on the cover"
    assert str(out.fields['slug'].type) == 'String!'

    inp = get_nullable_type(get_graphql_input_type(Book))
    assert inp.name == 'BookInput'
    assert list(inp.fields) == ['ISBN', 'title']
    assert inp.fields['ISBN'].out_name == 'isbn'


def test_object_title_splits_on_first_colon():
    t = get_nullable_type(get_graphql_type(Kitty))
    assert t.name == 'Cat'
    assert t.description == 'a small feline: purrs'


def test_preset_type_replaces_derivation():
    date_time = GraphQLScalarType('DateTime', serialize=lambda v: v.isoformat())

    class Event(BaseModel):
        at: datetime
        note: Optional[datetime] = None

    cfg = WeaverConfig(preset_type=lambda native: date_time if native is datetime else None)
    t = get_nullable_type(get_graphql_type(Event, WeaverContext(cfg)))
    assert str(t.fields['at'].type) == 'DateTime!'
    assert t.fields['note'].type is date_time


def test_unsupported_schema_raises():
    with pytest.raises(UnsupportedSchemaError):
        get_graphql_type(object)

    class Holder(BaseModel):
        model_config = ConfigDict(arbitrary_types_allowed=True)
        thing: object

    with pytest.raises(UnsupportedSchemaError):
        get_graphql_type(Holder)
