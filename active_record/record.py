import abc
import typing

import attr


COLUMN_NAME = "active_record.column_name"


class RecordMeta(abc.ABCMeta):
    def __new__(mcs, name: str, bases: tuple, namespace: dict) -> typing.Type:
        cls = super().__new__(mcs, name, bases, namespace)
        return attr.s(auto_attribs=True)(cls)


class Record(metaclass=RecordMeta):
    """Base class of mapped records.

    Subclasses become attrs classes; every one of them carries the implicit,
    keyword-only primary key ``id``. ``id is None`` means the record has never
    been saved.
    """

    id: typing.Optional[int] = attr.ib(default=None, kw_only=True)

    @property
    def is_persisted(self) -> bool:
        return self.id is not None


def column(name: typing.Optional[str] = None, **kwargs: typing.Any) -> typing.Any:
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[COLUMN_NAME] = name
    return attr.ib(metadata=metadata, **kwargs)


def is_record_type(field_type: typing.Any) -> bool:
    return isinstance(field_type, type) and issubclass(field_type, Record)
