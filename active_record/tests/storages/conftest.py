from typing import Generator

import pytest
from _pytest.fixtures import SubRequest
from sqlalchemy.engine import Engine, create_engine
from sqlalchemy.pool import StaticPool


@pytest.fixture()
def engine(request: SubRequest) -> Generator[Engine, None, None]:
    connection_url = request.config.getoption("--sqlalchemy-url")
    assert connection_url, "You have to define --sqlalchemy-url cmd line option!"
    kwargs = {}
    if connection_url.startswith("sqlite"):
        # one shared in-memory database for every connection of the engine
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    engine = create_engine(connection_url, **kwargs)
    yield engine
    engine.dispose()
