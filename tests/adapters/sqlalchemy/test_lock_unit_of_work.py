from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from genlocks.adapters.sqlalchemy import create_all_tables
from genlocks.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    shutdown,
    startup,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_create_all_tables_registers_lock_tables(sqlite_engine: Engine) -> None:
    create_all_tables(sqlite_engine)

    table_names = set(inspect(sqlite_engine).get_table_names())

    assert {"settings_document", "chat_metadata", "chat_group"} <= table_names


def test_unit_of_work_commits_and_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.chats.add("chat-1", character_name="Alice")
        uow.commit()

    with pytest.raises(RuntimeError), SqlAlchemyUnitOfWork() as uow:
        uow.repositories.chats.add("chat-2")
        raise RuntimeError("boom")

    with SqlAlchemyUnitOfWork() as uow:
        row = uow.repositories.chats.get("chat-1")
        assert row is not None
        assert row.character_name == "Alice"
        assert uow.repositories.chats.get("chat-2") is None


def test_repositories_are_unavailable_outside_the_context(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories
