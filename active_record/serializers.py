import datetime
import decimal
import typing
import uuid

import attr

from active_record import types
from active_record.exceptions import SchemaError


T = typing.TypeVar("T")


@attr.s(auto_attribs=True, frozen=True)
class SerializerBinding(typing.Generic[T]):
    domain_type: typing.Type[T]
    serialized_type: typing.Any
    encode: typing.Callable[[T], typing.Any]
    decode: typing.Callable[[typing.Any], T]

    @property
    def serialized_kind(self) -> types.StorageKind:
        return types.kind_of(self.serialized_type)


@attr.s(auto_attribs=True)
class SerializerRegistry:
    bindings: typing.Dict[typing.Type, SerializerBinding] = attr.Factory(dict)

    def register(
        self,
        domain_type: typing.Type[T],
        serialized_type: typing.Any,
        encode: typing.Callable[[T], typing.Any],
        decode: typing.Callable[[typing.Any], T],
    ) -> SerializerBinding:
        if types.kind_of(serialized_type) is None:
            raise SchemaError(f"{domain_type!r} can not be serialized into non-primitive {serialized_type!r}")
        binding = SerializerBinding(domain_type, serialized_type, encode, decode)
        self.bindings[domain_type] = binding
        return binding

    def lookup(self, domain_type: typing.Type) -> typing.Optional[SerializerBinding]:
        # exact match only, subclasses do not inherit their parent's binding
        try:
            return self.bindings.get(domain_type)
        except TypeError:
            return None

    def copy(self) -> "SerializerRegistry":
        return SerializerRegistry(dict(self.bindings))


default_registry = SerializerRegistry()


def register(
    domain_type: typing.Type[T],
    serialized_type: typing.Any,
    encode: typing.Callable[[T], typing.Any],
    decode: typing.Callable[[typing.Any], T],
) -> SerializerBinding:
    return default_registry.register(domain_type, serialized_type, encode, decode)


register(datetime.datetime, str, datetime.datetime.isoformat, datetime.datetime.fromisoformat)
register(datetime.date, str, datetime.date.isoformat, datetime.date.fromisoformat)
register(decimal.Decimal, str, str, decimal.Decimal)
register(uuid.UUID, str, str, uuid.UUID)
