class ActiveRecordError(Exception):
    pass


class SchemaError(ActiveRecordError):
    pass


class SerializationError(ActiveRecordError):
    pass


class HydrationError(ActiveRecordError):
    pass


class DriverError(ActiveRecordError):
    pass


class InvalidStateError(ActiveRecordError):
    pass
