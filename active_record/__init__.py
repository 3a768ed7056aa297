from active_record.config import Config
from active_record.exceptions import (
    ActiveRecordError,
    DriverError,
    HydrationError,
    InvalidStateError,
    SchemaError,
    SerializationError,
)
from active_record.record import Record, column
from active_record.repository import Repository
from active_record.serializers import SerializerRegistry, register
from active_record.session import Session
from active_record.types import Char, Float, Integer, Long, Short

__all__ = [
    "ActiveRecordError",
    "Char",
    "Config",
    "DriverError",
    "Float",
    "HydrationError",
    "Integer",
    "InvalidStateError",
    "Long",
    "Record",
    "Repository",
    "SchemaError",
    "SerializationError",
    "SerializerRegistry",
    "Session",
    "Short",
    "column",
    "register",
]
