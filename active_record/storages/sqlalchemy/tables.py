import typing

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Double,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
)

from active_record.record import Record
from active_record.schema import SchemaCatalog, TableSchema
from active_record.types import StorageKind


mapping = {
    StorageKind.TEXT: Text,
    StorageKind.BOOLEAN: Boolean,
    StorageKind.SHORT: SmallInteger,
    StorageKind.INTEGER: Integer,
    StorageKind.LONG: BigInteger,
    StorageKind.FLOAT: Float,
    StorageKind.DOUBLE: Double,
    StorageKind.CHAR: String(1),
    StorageKind.REFERENCE: BigInteger,
}

# SQLite only autoincrements an "INTEGER PRIMARY KEY"
PRIMARY_KEY_TYPE = BigInteger().with_variant(Integer, "sqlite")


def convert(kind: StorageKind) -> typing.Any:
    try:
        return mapping[kind]
    except KeyError:
        raise TypeError(f"Unsupported kind - {kind}")


def build_table(catalog: SchemaCatalog, schema: TableSchema, metadata: MetaData) -> Table:
    if schema.table_name in metadata.tables:
        return metadata.tables[schema.table_name]

    columns = [Column(schema.primary_key.name, PRIMARY_KEY_TYPE, primary_key=True, autoincrement=True)]
    for descriptor in schema.columns:
        column_args: typing.List[typing.Any] = [convert(descriptor.kind)]
        if descriptor.references is not None:
            target = catalog.resolve(descriptor.references)
            column_args.append(ForeignKey(f"{target.table_name}.{target.primary_key.name}"))
        columns.append(Column(descriptor.name, *column_args, nullable=descriptor.nullable))

    return Table(schema.table_name, metadata, *columns)


def build_tables(
    catalog: SchemaCatalog, metadata: MetaData, *record_types: typing.Type[Record]
) -> typing.List[Table]:
    """Builds tables for ``record_types`` and every record type they reference."""
    built: typing.Dict[typing.Type[Record], Table] = {}
    pending = list(record_types)
    while pending:
        record_type = pending.pop(0)
        if record_type in built:
            continue
        schema = catalog.resolve(record_type)
        built[record_type] = build_table(catalog, schema, metadata)
        pending.extend(column.references for column in schema.columns if column.references is not None)
    return list(built.values())
