import enum
import types as builtin_types
import typing


# Declared-type markers selecting a storage width. Plain ``int`` maps to LONG
# and plain ``float`` to DOUBLE.
Short = typing.NewType("Short", int)
Integer = typing.NewType("Integer", int)
Long = typing.NewType("Long", int)
Float = typing.NewType("Float", float)
Char = typing.NewType("Char", str)


class StorageKind(enum.Enum):
    TEXT = "TEXT"
    BOOLEAN = "BOOLEAN"
    SHORT = "SHORT"
    INTEGER = "INTEGER"
    LONG = "LONG"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    CHAR = "CHAR"
    REFERENCE = "REFERENCE"


mapping = {
    str: StorageKind.TEXT,
    bool: StorageKind.BOOLEAN,
    Short: StorageKind.SHORT,
    Integer: StorageKind.INTEGER,
    Long: StorageKind.LONG,
    int: StorageKind.LONG,
    Float: StorageKind.FLOAT,
    float: StorageKind.DOUBLE,
    Char: StorageKind.CHAR,
}


def kind_of(declared_type: typing.Any) -> typing.Optional[StorageKind]:
    try:
        return mapping.get(declared_type)
    except TypeError:  # unhashable annotation
        return None


_UNIONS = tuple(union for union in (typing.Union, getattr(builtin_types, "UnionType", None)) if union is not None)


def is_nullable(field_type: typing.Any) -> bool:
    args = typing.get_args(field_type)
    return typing.get_origin(field_type) in _UNIONS and len(args) == 2 and type(None) in args


def unwrap_nullable(field_type: typing.Any) -> typing.Tuple[typing.Any, bool]:
    if not is_nullable(field_type):
        return field_type, False
    wrapped = next(arg for arg in typing.get_args(field_type) if arg is not type(None))
    return wrapped, True
