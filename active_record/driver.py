import abc
import typing


Row = typing.Mapping[str, typing.Any]
Args = typing.Sequence[typing.Any]


class Driver(abc.ABC):
    """Executes single statements against a relational store.

    Clauses are SQL fragments using ``?`` as positional placeholder, matched
    in order against ``args``.
    """

    @abc.abstractmethod
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
        pass

    @abc.abstractmethod
    def raw_query(self, sql: str, args: Args = ()) -> typing.List[Row]:
        pass

    @abc.abstractmethod
    def insert(self, table: str, values: typing.Dict[str, typing.Any]) -> int:
        pass

    @abc.abstractmethod
    def update(self, table: str, values: typing.Dict[str, typing.Any], where: str, args: Args = ()) -> int:
        pass

    @abc.abstractmethod
    def delete(self, table: str, where: typing.Optional[str] = None, args: Args = ()) -> int:
        pass
