from typing import Generator, List, Type

import pytest
from sqlalchemy import MetaData
from sqlalchemy.engine import Engine

from active_record import Config, Record, Session
from active_record.schema import SchemaCatalog
from active_record.serializers import SerializerRegistry, default_registry
from active_record.storages.sqlalchemy import SqlAlchemyDriver, build_tables


@pytest.fixture()
def record_types() -> List[Type[Record]]:
    return []


@pytest.fixture()
def serializers() -> SerializerRegistry:
    return default_registry


@pytest.fixture()
def config() -> Config:
    return Config()


@pytest.fixture()
def catalog(config: Config, serializers: SerializerRegistry) -> SchemaCatalog:
    return SchemaCatalog(config, serializers)


@pytest.fixture()
def metadata() -> MetaData:
    return MetaData()


@pytest.fixture()
def driver(engine: Engine, metadata: MetaData) -> SqlAlchemyDriver:
    return SqlAlchemyDriver(engine, metadata)


@pytest.fixture()
def tables(
    engine: Engine, metadata: MetaData, catalog: SchemaCatalog, record_types: List[Type[Record]]
) -> Generator[MetaData, None, None]:
    build_tables(catalog, metadata, *record_types)
    metadata.drop_all(engine)
    metadata.create_all(engine)
    yield metadata
    metadata.drop_all(engine)


@pytest.fixture()
def session(tables: MetaData, driver: SqlAlchemyDriver, config: Config, catalog: SchemaCatalog) -> Session:
    return Session(driver, config, catalog=catalog)
