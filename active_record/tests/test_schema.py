import datetime
import typing

import pytest

from active_record.config import Config
from active_record.exceptions import SchemaError
from active_record.record import Record, column
from active_record.schema import ColumnDescriptor, SchemaCatalog
from active_record.serializers import default_registry
from active_record.types import Char, Float, Integer, Short, StorageKind


class BlogPost(Record):
    title: str
    pinned: bool
    draft: typing.Optional[str] = None


class Author(Record):
    name: str


class Book(Record):
    title: str
    author: typing.Optional[Author] = column("author_id", default=None)
    published: typing.Optional[datetime.date] = None


class Employee(Record):
    name: str
    manager: typing.Optional["Employee"] = None


class Measurement(Record):
    __tablename__ = "readings"

    small: Short
    medium: Integer
    large: int
    single: Float
    double: float
    letter: Char


class Untyped(Record):
    tags: list


class Clashing(Record):
    first: str = column("name")
    second: str = column("name")


class ClashingWithKey(Record):
    key: int = column("id")


class TextKey(Record):
    id: str = "key"


class Haunted(Record):
    ghost: typing.Optional["Missing"] = None  # noqa: F821


@pytest.fixture()
def catalog() -> SchemaCatalog:
    return SchemaCatalog()


def test_resolves_flat_record(catalog: SchemaCatalog) -> None:
    schema = catalog.resolve(BlogPost)

    assert schema.table_name == "blog_posts"
    assert schema.primary_key == ColumnDescriptor("id", "id", int, StorageKind.LONG, nullable=False)
    assert schema.columns == (
        ColumnDescriptor("title", "title", str, StorageKind.TEXT, nullable=False),
        ColumnDescriptor("pinned", "pinned", bool, StorageKind.BOOLEAN, nullable=False),
        ColumnDescriptor("draft", "draft", str, StorageKind.TEXT, nullable=True),
    )
    assert schema.column_names == ["id", "title", "pinned", "draft"]


def test_resolves_once(catalog: SchemaCatalog) -> None:
    assert catalog.resolve(BlogPost) is catalog.resolve(BlogPost)


def test_maps_storage_widths(catalog: SchemaCatalog) -> None:
    schema = catalog.resolve(Measurement)

    assert schema.table_name == "readings"
    assert [column.kind for column in schema.columns] == [
        StorageKind.SHORT,
        StorageKind.INTEGER,
        StorageKind.LONG,
        StorageKind.FLOAT,
        StorageKind.DOUBLE,
        StorageKind.CHAR,
    ]


def test_maps_reference_to_key_column(catalog: SchemaCatalog) -> None:
    author = catalog.resolve(Book).columns[1]

    assert author.name == "author_id"
    assert author.attribute == "author"
    assert author.kind is StorageKind.REFERENCE
    assert author.references is Author


def test_resolves_self_reference(catalog: SchemaCatalog) -> None:
    manager = catalog.resolve(Employee).columns[1]

    assert manager.references is Employee
    assert manager.nullable


def test_uses_registered_serializer(catalog: SchemaCatalog) -> None:
    published = catalog.resolve(Book).columns[2]

    assert published.kind is StorageKind.TEXT
    assert published.serializer is default_registry.lookup(datetime.date)


def test_follows_naming_config() -> None:
    catalog = SchemaCatalog(Config(primary_key_column="Id", pluralize_table_names=False))

    schema = catalog.resolve(BlogPost)

    assert schema.table_name == "blog_post"
    assert schema.primary_key.name == "Id"
    assert schema.primary_key.attribute == "id"


@pytest.mark.parametrize("record_type", [Untyped, Clashing, ClashingWithKey, TextKey, Haunted, int])
def test_refuses_malformed_mapping(catalog: SchemaCatalog, record_type: type) -> None:
    with pytest.raises(SchemaError):
        catalog.resolve(record_type)
