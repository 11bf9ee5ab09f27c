from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from genlocks.adapters.sqlalchemy.unit_of_work import shutdown, startup
from genlocks.ui import cli

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def cli_storage(sqlite_engine: Engine, caplog: pytest.LogCaptureFixture) -> Iterator[None]:
    startup(engine=sqlite_engine, force=True)
    caplog.set_level(logging.INFO, logger="genlocks")
    yield
    shutdown()


ALICE = ["--character", "Alice", "--character-index", "0", "--model", "gpt-4o", "--chat", "c1"]


def _messages(caplog: pytest.LogCaptureFixture) -> list[str]:
    return [record.getMessage() for record in caplog.records if record.name == cli.__name__]


def test_saved_character_lock_is_resolved(caplog: pytest.LogCaptureFixture) -> None:
    cli.main([*ALICE, "lock", "save", "--target", "character", "--preset", "Creative"])
    caplog.clear()

    cli.main([*ALICE, "resolve"])

    lines = _messages(caplog)
    assert any(line.startswith("preset") and "Creative (character)" in line for line in lines)
    assert any(line.startswith("profile") and "- (no lock)" in line for line in lines)


def test_chat_lock_beats_character_lock_and_is_reported_as_conflict(
    caplog: pytest.LogCaptureFixture,
) -> None:
    cli.main([*ALICE, "lock", "save", "--target", "character", "--preset", "A"])
    cli.main([*ALICE, "lock", "save", "--target", "chat", "--preset", "B"])
    caplog.clear()

    cli.main([*ALICE, "conflicts"])

    assert _messages(caplog) == ["preset: chat=B, character=A"]


def test_group_lock_round_trip(caplog: pytest.LogCaptureFixture) -> None:
    group = ["--group", "g1", "--group-name", "Party", "--chat", "gc1", "--model", "gpt-4o"]
    cli.main([*group, "lock", "save", "--target", "group", "--template", "tmpl_x"])
    caplog.clear()

    cli.main([*group, "resolve"])

    assert any("tmpl_x (group)" in line for line in _messages(caplog))

    cli.main([*group, "lock", "clear", "--target", "group"])
    caplog.clear()
    cli.main([*group, "conflicts"])
    assert _messages(caplog) == ["No conflicting locks"]


def test_lock_save_without_values_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([*ALICE, "lock", "save", "--target", "chat"])

    assert excinfo.value.code == 2


def test_group_target_outside_group_fails() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([*ALICE, "lock", "save", "--target", "group", "--preset", "Q"])

    assert excinfo.value.code == 1


def test_unknown_target_is_rejected_by_parser() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([*ALICE, "lock", "save", "--target", "individual", "--preset", "Q"])

    assert excinfo.value.code == 2


def test_preferences_set_and_reset(caplog: pytest.LogCaptureFixture) -> None:
    cli.main(["prefs", "set", "auto_apply_mode", "always"])
    cli.main(["prefs", "set", "priority_order", "character, chat, model"])
    caplog.clear()

    cli.main(["prefs", "show"])

    lines = _messages(caplog)
    assert "auto_apply_mode = always" in lines
    assert "priority_order = ['character', 'chat', 'model']" in lines

    cli.main(["prefs", "reset", "auto_apply_mode"])
    caplog.clear()
    cli.main(["prefs", "show"])
    assert "auto_apply_mode = ask" in _messages(caplog)


@pytest.mark.parametrize(
    "argv",
    [
        ["prefs", "set", "show_notifications", "maybe"],
        ["prefs", "set", "priority_order", "model,chat"],
        ["prefs", "set", "auto_apply_mode", "sometimes"],
    ],
)
def test_invalid_preferences_exit_with_usage_error(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2


def test_missing_template_commands_fail() -> None:
    cli.main(["templates", "list"])

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["templates", "show", "tmpl_missing"])
    assert excinfo.value.code == 1

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["templates", "delete", "tmpl_missing"])
    assert excinfo.value.code == 1


def test_apply_switches_the_session(caplog: pytest.LogCaptureFixture) -> None:
    cli.main([*ALICE, "lock", "save", "--target", "character", "--profile", "P", "--preset", "Q"])
    caplog.clear()

    cli.main([*ALICE, "apply"])

    assert _messages(caplog) == ["Switched profile to P", "Switched preset to Q"]


def test_apply_with_missing_template_fails() -> None:
    cli.main([*ALICE, "lock", "save", "--target", "chat", "--template", "tmpl_missing"])

    with pytest.raises(SystemExit) as excinfo:
        cli.main([*ALICE, "apply"])

    assert excinfo.value.code == 1
