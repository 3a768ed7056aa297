import typing

from active_record.record import Record, is_record_type
from active_record.session import Session


RecordType = typing.TypeVar("RecordType", bound=Record)


class Repository(typing.Generic[RecordType]):
    """Session operations bound to one record type.

    Either subclass it with a concrete type, ``class NoteRepo(Repository[Note])``,
    or pass the type explicitly.
    """

    record_type: typing.ClassVar[typing.Optional[typing.Type[Record]]] = None

    def __init_subclass__(cls, **kwargs: typing.Any) -> None:
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", ()):
            if typing.get_origin(base) is Repository:
                (record_type,) = typing.get_args(base)
                if is_record_type(record_type):
                    cls.record_type = record_type

    def __init__(self, session: Session, record_type: typing.Optional[typing.Type[RecordType]] = None) -> None:
        record_type = record_type or self.record_type
        if record_type is None:
            raise TypeError(f"{type(self).__name__} is not bound to a record type")
        self._session = session
        self._record_type = record_type

    def get(self, identity: int) -> typing.Optional[RecordType]:
        return self._session.load(self._record_type, identity)

    def save(self, record: RecordType) -> RecordType:
        return self._session.save(record)

    def delete(self, record: RecordType) -> None:
        self._session.delete(record)

    def first(self) -> typing.Optional[RecordType]:
        return self._session.first(self._record_type)

    def last(self) -> typing.Optional[RecordType]:
        return self._session.last(self._record_type)

    def all(self) -> typing.List[RecordType]:
        return self._session.query(self._record_type)

    def find(
        self,
        selection: str,
        *args: typing.Any,
        order_by: typing.Optional[str] = None,
        limit: typing.Optional[int] = None,
    ) -> typing.List[RecordType]:
        return self._session.query(self._record_type, selection=selection, args=args, order_by=order_by, limit=limit)
