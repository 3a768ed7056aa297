import typing

import attr
import inflection

from active_record import types
from active_record.config import Config
from active_record.exceptions import SchemaError
from active_record.record import COLUMN_NAME, Record, is_record_type
from active_record.serializers import SerializerBinding, SerializerRegistry, default_registry


PRIMARY_KEY_ATTRIBUTE = "id"


@attr.s(auto_attribs=True, frozen=True)
class ColumnDescriptor:
    name: str
    attribute: str
    declared_type: typing.Any
    kind: types.StorageKind
    nullable: bool = True
    serializer: typing.Optional[SerializerBinding] = None
    references: typing.Optional[typing.Type[Record]] = None


@attr.s(auto_attribs=True, frozen=True)
class TableSchema:
    record_type: typing.Type[Record]
    table_name: str
    primary_key: ColumnDescriptor
    columns: typing.Tuple[ColumnDescriptor, ...]

    @property
    def column_names(self) -> typing.List[str]:
        return [self.primary_key.name] + [column.name for column in self.columns]

    def __iter__(self) -> typing.Iterator[ColumnDescriptor]:
        yield self.primary_key
        yield from self.columns


@attr.s(auto_attribs=True)
class SchemaCatalog:
    config: Config = attr.Factory(Config)
    serializers: SerializerRegistry = default_registry
    schemas: typing.Dict[typing.Type[Record], TableSchema] = attr.Factory(dict)

    def resolve(self, record_type: typing.Type[Record]) -> TableSchema:
        try:
            return self.schemas[record_type]
        except KeyError:
            schema = self.schemas[record_type] = self._build(record_type)
            return schema

    def table_name(self, record_type: typing.Type[Record]) -> str:
        explicit = getattr(record_type, "__tablename__", None)
        if explicit:
            return explicit
        name = inflection.underscore(record_type.__name__)
        return inflection.pluralize(name) if self.config.pluralize_table_names else name

    def _build(self, record_type: typing.Type[Record]) -> TableSchema:
        if not is_record_type(record_type):
            raise SchemaError(f"{record_type!r} is not a Record")

        try:
            attr.resolve_types(record_type)
        except NameError as e:
            raise SchemaError(f"Unresolvable annotation on {record_type.__name__} - {e}") from e

        fields = {field.name: field for field in attr.fields(record_type)}
        primary_key = self._primary_key(record_type, fields.pop(PRIMARY_KEY_ATTRIBUTE, None))
        columns = [self._column(record_type, field) for field in fields.values()]

        seen: typing.Set[str] = set()
        for descriptor in [primary_key] + columns:
            if descriptor.name in seen:
                raise SchemaError(f"Duplicated column {descriptor.name!r} in {record_type.__name__}")
            seen.add(descriptor.name)

        return TableSchema(record_type, self.table_name(record_type), primary_key, tuple(columns))

    def _primary_key(
        self, record_type: typing.Type[Record], field: typing.Optional[attr.Attribute]
    ) -> ColumnDescriptor:
        if field is None:
            raise SchemaError(f"{record_type.__name__} has no {PRIMARY_KEY_ATTRIBUTE!r} attribute")
        field_type, _ = types.unwrap_nullable(field.type)
        if field_type is not int:
            raise SchemaError(
                f"{record_type.__name__}.{PRIMARY_KEY_ATTRIBUTE} must be an optional int, got {field.type!r}"
            )
        return ColumnDescriptor(
            name=self.config.primary_key_column,
            attribute=field.name,
            declared_type=int,
            kind=types.StorageKind.LONG,
            nullable=False,
        )

    def _column(self, record_type: typing.Type[Record], field: attr.Attribute) -> ColumnDescriptor:
        field_type, nullable = types.unwrap_nullable(field.type)
        name = field.metadata.get(COLUMN_NAME) or field.name

        if is_record_type(field_type):
            return ColumnDescriptor(
                name, field.name, field_type, types.StorageKind.REFERENCE, nullable, references=field_type
            )

        serializer = self.serializers.lookup(field_type)
        if serializer is not None:
            if serializer.serialized_kind is None:
                raise SchemaError(f"Serializer for {field_type!r} targets non-primitive {serializer.serialized_type!r}")
            return ColumnDescriptor(name, field.name, field_type, serializer.serialized_kind, nullable, serializer)

        kind = types.kind_of(field_type)
        if kind is None:
            raise SchemaError(
                f"{record_type.__name__}.{field.name} has unsupported type {field.type!r}, register a serializer"
            )
        return ColumnDescriptor(name, field.name, field_type, kind, nullable)
