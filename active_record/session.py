import functools
import logging
import typing

import attr

from active_record import codec
from active_record.config import Config
from active_record.driver import Args, Driver, Row
from active_record.exceptions import HydrationError, InvalidStateError, SerializationError
from active_record.identity import IdentityCache
from active_record.record import Record
from active_record.schema import ColumnDescriptor, SchemaCatalog, TableSchema
from active_record.serializers import SerializerRegistry, default_registry


logger = logging.getLogger(__name__)

RecordType = typing.TypeVar("RecordType", bound=Record)


@attr.s(auto_attribs=True)
class _HydrationPass:
    # instances put into the identity cache by this pass, evicted if it fails
    registered: typing.List[Record] = attr.Factory(list)
    # decoded column values, assigned only once every row of the pass decoded
    pending: typing.List[typing.Tuple[Record, typing.Dict[str, typing.Any]]] = attr.Factory(list)
    # references found to have no row
    missing: typing.Set[typing.Tuple[typing.Type[Record], int]] = attr.Factory(set)

    def apply(self) -> None:
        for record, values in self.pending:
            for attribute, value in values.items():
                setattr(record, attribute, value)


class Session:
    """Saves, loads and deletes records through a driver.

    A session owns its identity cache: while a record is cached, every load of
    its row returns that same instance. Sessions are not thread-safe.
    """

    def __init__(
        self,
        driver: Driver,
        config: typing.Optional[Config] = None,
        serializers: typing.Optional[SerializerRegistry] = None,
        catalog: typing.Optional[SchemaCatalog] = None,
        identity_cache: typing.Optional[IdentityCache] = None,
    ) -> None:
        self.driver = driver
        self.config = config if config is not None else Config()
        if catalog is None:
            catalog = SchemaCatalog(self.config, serializers if serializers is not None else default_registry)
        self.catalog = catalog
        self.identity_cache = identity_cache if identity_cache is not None else IdentityCache()

    # record operations

    def save(self, record: RecordType) -> RecordType:
        """Writes every mapped column; inserts transient records, updates persisted ones by id."""
        schema = self.catalog.resolve(type(record))
        values = self._to_values(schema, record)

        if record.id is None:
            record.id = self.driver.insert(schema.table_name, values)
            stale = self.identity_cache.get(type(record), record.id)
            if stale is not None:
                # the database reused the id of a row deleted behind the cache
                logger.debug("Replacing stale %s with id %s", type(record).__name__, record.id)
                self.identity_cache.remove(stale)
            self.identity_cache.add(record)
            logger.debug("Inserted %s with id %s", type(record).__name__, record.id)
        else:
            count = self.driver.update(schema.table_name, values, self._key_clause(schema), (record.id,))
            if not count:
                logger.warning("Saving %s with id %s matched no row", type(record).__name__, record.id)

        return record

    def delete(self, record: Record) -> None:
        if record.id is None:
            raise InvalidStateError(f"Can not delete a {type(record).__name__} that was never saved")
        schema = self.catalog.resolve(type(record))
        self.driver.delete(schema.table_name, self._key_clause(schema), (record.id,))
        self.identity_cache.remove(record)

    def get_many(
        self, record: Record, other_type: typing.Type[RecordType], foreign_key_column: str
    ) -> typing.List[RecordType]:
        """Records of ``other_type`` whose ``foreign_key_column`` references ``record``."""
        if record.id is None:
            raise InvalidStateError(f"Unsaved {type(record).__name__} has no related records")
        return self.query(other_type, selection=f"{foreign_key_column} = ?", args=(record.id,))

    # type operations

    def delete_by_id(self, record_type: typing.Type[Record], identity: int) -> bool:
        schema = self.catalog.resolve(record_type)
        deleted = self.delete_where(record_type, self._key_clause(schema), (identity,)) > 0
        cached = self.identity_cache.get(record_type, identity)
        if cached is not None:
            self.identity_cache.remove(cached)
        return deleted

    def delete_where(
        self, record_type: typing.Type[Record], where: typing.Optional[str] = None, args: Args = ()
    ) -> int:
        schema = self.catalog.resolve(record_type)
        key = schema.primary_key.name
        rows = self.driver.query(schema.table_name, [key], where, args)
        count = self.driver.delete(schema.table_name, where, args)
        for row in rows:
            cached = self.identity_cache.get(record_type, int(row[key]))
            if cached is not None:
                self.identity_cache.remove(cached)
        return count

    def load(self, record_type: typing.Type[RecordType], identity: int) -> typing.Optional[RecordType]:
        schema = self.catalog.resolve(record_type)
        return self.query_single(record_type, selection=self._key_clause(schema), args=(identity,))

    def first(self, record_type: typing.Type[RecordType]) -> typing.Optional[RecordType]:
        schema = self.catalog.resolve(record_type)
        return self.query_single(record_type, order_by=f"{schema.primary_key.name} ASC")

    def last(self, record_type: typing.Type[RecordType]) -> typing.Optional[RecordType]:
        schema = self.catalog.resolve(record_type)
        return self.query_single(record_type, order_by=f"{schema.primary_key.name} DESC")

    def query(
        self,
        record_type: typing.Type[RecordType],
        columns: typing.Optional[typing.Sequence[str]] = None,
        selection: typing.Optional[str] = None,
        args: Args = (),
        group_by: typing.Optional[str] = None,
        having: typing.Optional[str] = None,
        order_by: typing.Optional[str] = None,
        limit: typing.Optional[int] = None,
    ) -> typing.List[RecordType]:
        schema = self.catalog.resolve(record_type)
        rows = self.driver.query(schema.table_name, columns, selection, args, group_by, having, order_by, limit)
        return self._hydrate_rows(record_type, rows)

    def query_single(
        self,
        record_type: typing.Type[RecordType],
        columns: typing.Optional[typing.Sequence[str]] = None,
        selection: typing.Optional[str] = None,
        args: Args = (),
        group_by: typing.Optional[str] = None,
        having: typing.Optional[str] = None,
        order_by: typing.Optional[str] = None,
    ) -> typing.Optional[RecordType]:
        records = self.query(record_type, columns, selection, args, group_by, having, order_by, limit=1)
        return records[0] if records else None

    def raw_query(self, record_type: typing.Type[RecordType], sql: str, args: Args = ()) -> typing.List[RecordType]:
        return self._hydrate_rows(record_type, self.driver.raw_query(sql, args))

    def raw_query_single(
        self, record_type: typing.Type[RecordType], sql: str, args: Args = ()
    ) -> typing.Optional[RecordType]:
        records = self.raw_query(record_type, sql, args)
        return records[0] if records else None

    # encoding

    def _to_values(self, schema: TableSchema, record: Record) -> typing.Dict[str, typing.Any]:
        values = {}
        for column in schema.columns:
            try:
                values[column.name] = codec.to_storage(getattr(record, column.attribute), column)
            except SerializationError as e:
                if self.config.strict:
                    raise
                logger.warning("Skipping column %r of %s - %s", column.name, schema.record_type.__name__, e)
        return values

    @staticmethod
    def _key_clause(schema: TableSchema) -> str:
        return f"{schema.primary_key.name} = ?"

    # hydration

    def _hydrate_rows(self, record_type: typing.Type[RecordType], rows: typing.List[Row]) -> typing.List[RecordType]:
        hydration = _HydrationPass()
        try:
            records = [self._hydrate(record_type, row, hydration) for row in rows]
        except (HydrationError, SerializationError) as e:
            for record in hydration.registered:
                self.identity_cache.remove(record)
            if self.config.strict:
                raise
            logger.error("Dropping %d %s rows - %s", len(rows), record_type.__name__, e)
            return []
        except Exception:
            for record in hydration.registered:
                self.identity_cache.remove(record)
            raise
        hydration.apply()
        return records

    def _hydrate(self, record_type: typing.Type[RecordType], row: Row, hydration: _HydrationPass) -> RecordType:
        schema = self.catalog.resolve(record_type)
        identity = row.get(schema.primary_key.name)
        if identity is not None:
            identity = int(identity)

        record = self.identity_cache.get(record_type, identity) if identity is not None else None
        if record is None:
            record = self._instantiate(record_type)
            record.id = identity
            # registered before its columns are read, so references back to it resolve from the cache
            if identity is not None:
                self.identity_cache.add(record)
                hydration.registered.append(record)

        resolve_reference = functools.partial(self._resolve_reference, hydration=hydration)
        values = {}
        for column in schema.columns:
            value = self._decode(record_type, row, column, resolve_reference)
            if value is not codec.SKIP:
                values[column.attribute] = value
        hydration.pending.append((record, values))
        return record

    def _decode(
        self,
        record_type: typing.Type[Record],
        row: Row,
        column: ColumnDescriptor,
        resolve_reference: codec.ReferenceResolver,
    ) -> typing.Any:
        try:
            return codec.from_storage(row, column, resolve_reference)
        except SerializationError as e:
            if self.config.strict:
                raise
            logger.warning("Skipping column %r of %s - %s", column.name, record_type.__name__, e)
            return codec.SKIP

    def _resolve_reference(
        self, record_type: typing.Type[Record], identity: int, hydration: _HydrationPass
    ) -> typing.Optional[Record]:
        cached = self.identity_cache.get(record_type, identity)
        if cached is not None:
            return cached
        if (record_type, identity) in hydration.missing:
            return None

        schema = self.catalog.resolve(record_type)
        rows = self.driver.query(schema.table_name, selection=self._key_clause(schema), args=(identity,), limit=1)
        if not rows:
            hydration.missing.add((record_type, identity))
            return None
        return self._hydrate(record_type, rows[0], hydration)

    @staticmethod
    def _instantiate(record_type: typing.Type[RecordType]) -> RecordType:
        try:
            record = record_type.__new__(record_type)
            for field in attr.fields(record_type):
                default = field.default
                if default is attr.NOTHING:
                    value = None
                elif isinstance(default, attr.Factory):
                    value = default.factory(record) if default.takes_self else default.factory()
                else:
                    value = default
                object.__setattr__(record, field.name, value)
        except Exception as e:
            raise HydrationError(f"Can not instantiate {record_type.__name__} - {e}") from e
        return record
