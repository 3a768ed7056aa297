import contextlib
import logging
import re
import typing

from sqlalchemy import MetaData, Table, func, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from active_record.driver import Args, Driver, Row
from active_record.exceptions import DriverError


logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\?")


def bind_positional(clause: str, args: Args) -> TextClause:
    """Turns a clause with ``?`` placeholders into a text clause with bound parameters."""
    params: typing.Dict[str, typing.Any] = {}

    def substitute(match: typing.Match) -> str:
        index = len(params)
        if index >= len(args):
            raise DriverError(f"Not enough arguments for {clause!r}, got {len(args)}")
        name = f"arg_{index}"
        params[name] = args[index]
        return f":{name}"

    converted = _PLACEHOLDER.sub(substitute, clause)
    if len(params) != len(args):
        raise DriverError(f"{clause!r} takes {len(params)} arguments, got {len(args)}")
    return text(converted).bindparams(**params)


class SqlAlchemyDriver(Driver):
    """Driver over SQLAlchemy Core.

    Given an ``Engine`` every call runs in its own transaction. Given a
    ``Connection`` statements run inside whatever transaction the caller opened.
    Tables missing from ``metadata`` are reflected on first use.
    """

    def __init__(self, bind: typing.Union[Engine, Connection], metadata: typing.Optional[MetaData] = None) -> None:
        self._bind = bind
        self._metadata = metadata if metadata is not None else MetaData()

    @property
    def metadata(self) -> MetaData:
        return self._metadata

    @contextlib.contextmanager
    def _connect(self) -> typing.Iterator[Connection]:
        try:
            if isinstance(self._bind, Connection):
                yield self._bind
            else:
                with self._bind.begin() as connection:
                    yield connection
        except SQLAlchemyError as e:
            raise DriverError(str(e)) from e

    def _table(self, name: str, connection: Connection) -> Table:
        table = self._metadata.tables.get(name)
        if table is None:
            table = Table(name, self._metadata, autoload_with=connection)
        return table

    def query(
        self,
        table: str,
        columns: typing.Optional[typing.Sequence[str]] = None,
        selection: typing.Optional[str] = None,
        args: Args = (),
        group_by: typing.Optional[str] = None,
        having: typing.Optional[str] = None,
        order_by: typing.Optional[str] = None,
        limit: typing.Optional[int] = None,
    ) -> typing.List[Row]:
        with self._connect() as connection:
            sa_table = self._table(table, connection)
            if columns:
                unknown = [name for name in columns if name not in sa_table.c]
                if unknown:
                    raise DriverError(f"Unknown columns {unknown} in {table!r}")
                statement = select(*(sa_table.c[name] for name in columns))
            else:
                statement = select(sa_table)

            if selection:
                statement = statement.where(bind_positional(selection, args))
            if group_by:
                statement = statement.group_by(text(group_by))
            if having:
                statement = statement.having(text(having))
            if order_by:
                statement = statement.order_by(text(order_by))
            if limit is not None:
                statement = statement.limit(int(limit))

            logger.debug("Querying %s where %s %s", table, selection, args)
            return [dict(row) for row in connection.execute(statement).mappings()]

    def raw_query(self, sql: str, args: Args = ()) -> typing.List[Row]:
        statement = bind_positional(sql, args)
        with self._connect() as connection:
            logger.debug("Raw query %s %s", sql, args)
            return [dict(row) for row in connection.execute(statement).mappings()]

    def insert(self, table: str, values: typing.Dict[str, typing.Any]) -> int:
        with self._connect() as connection:
            sa_table = self._table(table, connection)
            statement = sa_table.insert().values(values) if values else sa_table.insert()
            result = connection.execute(statement)
            identity = result.inserted_primary_key[0]
            logger.debug("Inserted into %s with key %s", table, identity)
            return identity

    def update(self, table: str, values: typing.Dict[str, typing.Any], where: str, args: Args = ()) -> int:
        clause = bind_positional(where, args)
        with self._connect() as connection:
            sa_table = self._table(table, connection)
            if not values:
                # nothing to write, report how many rows would have been touched
                return connection.execute(select(func.count()).select_from(sa_table).where(clause)).scalar_one()
            result = connection.execute(sa_table.update().where(clause).values(values))
            logger.debug("Updated %d rows of %s where %s %s", result.rowcount, table, where, args)
            return result.rowcount

    def delete(self, table: str, where: typing.Optional[str] = None, args: Args = ()) -> int:
        with self._connect() as connection:
            sa_table = self._table(table, connection)
            statement = sa_table.delete()
            if where:
                statement = statement.where(bind_positional(where, args))
            result = connection.execute(statement)
            logger.debug("Deleted %d rows of %s where %s %s", result.rowcount, table, where, args)
            return result.rowcount
