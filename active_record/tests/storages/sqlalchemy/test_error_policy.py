import enum
import logging
import typing

import attr
import pytest
from _pytest.logging import LogCaptureFixture
from sqlalchemy import text
from sqlalchemy.engine import Engine

from active_record import Config, Record, Session
from active_record.exceptions import HydrationError, SerializationError
from active_record.serializers import SerializerRegistry, default_registry


class Colour(enum.Enum):
    RED = "red"
    GREEN = "green"
    INFRARED = "infrared"


def _colour_to_text(colour: Colour) -> str:
    if colour is Colour.INFRARED:
        raise ValueError("Not a visible colour")
    return colour.value


class Paint(Record):
    name: str
    colour: typing.Optional[Colour] = None


def _no_default() -> str:
    raise RuntimeError("No default label")


class Fragile(Record):
    name: str
    label: str = attr.Factory(_no_default)


@pytest.fixture()
def record_types() -> typing.List[typing.Type[Record]]:
    return [Paint, Fragile]


@pytest.fixture()
def serializers() -> SerializerRegistry:
    registry = default_registry.copy()
    registry.register(Colour, str, _colour_to_text, Colour)
    return registry


@pytest.fixture(params=[True, False], ids=["strict", "legacy"])
def config(request: pytest.FixtureRequest) -> Config:
    return Config(strict=request.param)


def _execute(engine: Engine, statement: str) -> None:
    with engine.begin() as connection:
        connection.execute(text(statement))


def test_persists_serialized_enum(session: Session) -> None:
    paint = session.save(Paint("Signal", Colour.RED))
    session.identity_cache.clear()

    loaded = session.load(Paint, paint.id)

    assert loaded is not paint
    assert loaded.colour is Colour.RED


def test_encoding_failure(session: Session, config: Config, caplog: LogCaptureFixture) -> None:
    paint = Paint("Heat", Colour.INFRARED)

    if config.strict:
        with pytest.raises(SerializationError):
            session.save(paint)
        assert paint.id is None
        return

    with caplog.at_level(logging.WARNING, logger="active_record.session"):
        session.save(paint)

    assert "Skipping column 'colour'" in caplog.text
    session.identity_cache.clear()
    assert session.load(Paint, paint.id).colour is None


def test_decoding_failure(session: Session, engine: Engine, config: Config, caplog: LogCaptureFixture) -> None:
    paint = session.save(Paint("Mystery", Colour.RED))
    _execute(engine, "UPDATE paints SET colour = 'mauve'")
    session.identity_cache.clear()

    if config.strict:
        with pytest.raises(SerializationError):
            session.load(Paint, paint.id)
        assert len(session.identity_cache) == 0
        return

    with caplog.at_level(logging.WARNING, logger="active_record.session"):
        loaded = session.load(Paint, paint.id)

    assert loaded.name == "Mystery"
    assert loaded.colour is None
    assert "Skipping column 'colour'" in caplog.text


def test_hydration_failure(session: Session, engine: Engine, config: Config, caplog: LogCaptureFixture) -> None:
    _execute(engine, "INSERT INTO fragiles (name, label) VALUES ('a', 'x'), ('b', 'y')")

    if config.strict:
        with pytest.raises(HydrationError):
            session.query(Fragile)
    else:
        with caplog.at_level(logging.ERROR, logger="active_record.session"):
            assert session.query(Fragile) == []
        assert "Dropping 2 Fragile rows" in caplog.text

    assert len(session.identity_cache) == 0
