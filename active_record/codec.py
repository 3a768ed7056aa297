import logging
import math
import struct
import typing

import attr

from active_record.exceptions import InvalidStateError, SerializationError
from active_record.record import Record
from active_record.schema import ColumnDescriptor
from active_record.types import StorageKind


logger = logging.getLogger(__name__)

Row = typing.Mapping[str, typing.Any]
ReferenceResolver = typing.Callable[[typing.Type[Record], int], typing.Optional[Record]]

# returned by from_storage when the target field must be left untouched
SKIP = object()


@attr.s(auto_attribs=True, frozen=True)
class Primitive:
    encode: typing.Callable[[typing.Any], typing.Any]
    decode: typing.Callable[[typing.Any], typing.Any]


def _require(value: typing.Any, *expected: type) -> None:
    if isinstance(value, bool) and bool not in expected:
        raise TypeError(f"Expected {expected[0].__name__}, got bool")
    if not isinstance(value, expected):
        raise TypeError(f"Expected {expected[0].__name__}, got {type(value).__name__}")


def _encode_text(value: typing.Any) -> str:
    _require(value, str)
    return value


def _encode_bool(value: typing.Any) -> bool:
    _require(value, bool)
    return value


def _integer(bits: int) -> typing.Callable[[typing.Any], int]:
    low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1

    def encode(value: typing.Any) -> int:
        _require(value, int)
        if not low <= value <= high:
            raise ValueError(f"{value} does not fit in {bits} bits")
        return value

    return encode


def _decode_integer(value: typing.Any) -> int:
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{value} is not a whole number")
    return int(value)


def _encode_double(value: typing.Any) -> float:
    _require(value, float, int)
    value = float(value)
    if math.isnan(value):
        raise ValueError("NaN is not storable")
    return value


def _to_float32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _encode_float(value: typing.Any) -> float:
    return _to_float32(_encode_double(value))


def _encode_char(value: typing.Any) -> str:
    _require(value, str)
    if len(value) != 1:
        raise ValueError(f"Expected a single character, got {value!r}")
    return value


def _decode_char(value: typing.Any) -> str:
    return str(value)[0]


primitives: typing.Dict[StorageKind, Primitive] = {
    StorageKind.TEXT: Primitive(_encode_text, str),
    StorageKind.BOOLEAN: Primitive(_encode_bool, bool),
    StorageKind.SHORT: Primitive(_integer(16), _decode_integer),
    StorageKind.INTEGER: Primitive(_integer(32), _decode_integer),
    StorageKind.LONG: Primitive(_integer(64), _decode_integer),
    StorageKind.FLOAT: Primitive(_encode_float, lambda value: _to_float32(float(value))),
    StorageKind.DOUBLE: Primitive(_encode_double, float),
    StorageKind.CHAR: Primitive(_encode_char, _decode_char),
    StorageKind.REFERENCE: Primitive(_integer(64), _decode_integer),
}


def to_storage(value: typing.Any, column: ColumnDescriptor) -> typing.Any:
    if value is None:
        return None

    if column.serializer is not None:
        try:
            value = column.serializer.encode(value)
        except Exception as e:
            raise SerializationError(f"Serializer for column {column.name!r} failed to encode {value!r}") from e
        if value is None:
            return None

    if column.kind is StorageKind.REFERENCE:
        if not isinstance(value, column.references):
            raise SerializationError(f"Column {column.name!r} expects {column.references.__name__}, got {value!r}")
        if value.id is None:
            raise InvalidStateError(
                f"Column {column.name!r} references an unsaved {column.references.__name__}, save it first"
            )
        value = value.id

    try:
        return primitives[column.kind].encode(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise SerializationError(f"Column {column.name!r} can not store {value!r} - {e}") from e


def from_storage(row: Row, column: ColumnDescriptor, resolve_reference: ReferenceResolver) -> typing.Any:
    if column.name not in row:
        return SKIP

    raw = row[column.name]
    if raw is None:
        return SKIP

    try:
        value = primitives[column.kind].decode(raw)
    except (TypeError, ValueError, IndexError, OverflowError) as e:
        raise SerializationError(f"Column {column.name!r} holds unreadable {raw!r} - {e}") from e

    if column.kind is StorageKind.REFERENCE:
        value = resolve_reference(column.references, value)
        if value is None:
            logger.warning("Column %r references missing %s with id %s", column.name, column.references.__name__, raw)
            return SKIP
        return value

    if column.serializer is not None:
        try:
            value = column.serializer.decode(value)
        except Exception as e:
            raise SerializationError(f"Serializer for column {column.name!r} failed to decode {raw!r}") from e

    return SKIP if value is None else value
