import typing

import attr

from active_record.exceptions import InvalidStateError
from active_record.record import Record


IdentityKey = typing.Tuple[typing.Type[Record], int]


@attr.s(auto_attribs=True)
class IdentityCache:
    """Live instances of persisted records, one per (record type, id).

    Entries are only dropped by ``remove`` or ``clear``.
    """

    entries: typing.Dict[IdentityKey, Record] = attr.Factory(dict)

    def add(self, record: Record) -> None:
        if record.id is None:
            raise InvalidStateError(f"Transient {type(record).__name__} has no identity to cache")
        key = (type(record), record.id)
        cached = self.entries.get(key)
        if cached is not None and cached is not record:
            raise InvalidStateError(f"Another {type(record).__name__} with id {record.id} is already live")
        self.entries[key] = record

    def get(self, record_type: typing.Type[Record], identity: int) -> typing.Optional[Record]:
        return self.entries.get((record_type, identity))

    def remove(self, record: Record) -> None:
        if record.id is None:
            return
        key = (type(record), record.id)
        if self.entries.get(key) is record:
            del self.entries[key]

    def clear(self) -> None:
        self.entries.clear()

    def __contains__(self, record: Record) -> bool:
        return record.id is not None and self.entries.get((type(record), record.id)) is record

    def __len__(self) -> int:
        return len(self.entries)
