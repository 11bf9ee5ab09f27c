from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from genlocks.adapters.memory import InMemoryHost, RecordingNotifier, StaticConfirmation
from genlocks.app import LockSession, SqlStores, build_session, build_sql_stores
from genlocks.config import configure_logging, get_engine_config
from genlocks.domain.errors import InvalidConfigurationError, LockEngineError
from genlocks.domain.model import Dimension, LockRecord, Preferences
from genlocks.domain.ports import HostSignals

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

_TARGETS = [Dimension.CHARACTER, Dimension.MODEL, Dimension.CHAT, Dimension.GROUP]


class CommandFailedError(RuntimeError):
    """A command ran but reported failure through the notifier."""


def _add_context_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--character", type=str, help="Active character name")
    parser.add_argument("--character-index", type=int, help="Active character index")
    parser.add_argument("--model", type=str, help="Active model identifier")
    parser.add_argument("--chat", type=str, help="Active chat id")
    parser.add_argument("--group", type=str, help="Active group id (makes this a group chat)")
    parser.add_argument("--group-name", type=str, help="Display name of the group")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and edit generation locks")
    _add_context_arguments(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("resolve", help="Show which locks win for the given context")
    subparsers.add_parser("conflicts", help="Show items locked to different values")
    subparsers.add_parser("apply", help="Apply the winning locks to the session")

    lock = subparsers.add_parser("lock", help="Save or clear locks")
    lock_sub = lock.add_subparsers(dest="lock_command", required=True)
    for name, help_text in (("save", "Save locks"), ("clear", "Clear locks")):
        action = lock_sub.add_parser(name, help=help_text)
        action.add_argument(
            "--target",
            dest="targets",
            action="append",
            required=True,
            choices=[target.value for target in _TARGETS],
            help="Dimension to write (repeatable)",
        )
        if name == "save":
            action.add_argument("--profile", type=str, help="Connection profile to lock")
            action.add_argument("--preset", type=str, help="Generation preset to lock")
            action.add_argument("--template", type=str, help="Prompt template id to lock")

    prefs = subparsers.add_parser("prefs", help="Preference commands")
    prefs_sub = prefs.add_subparsers(dest="prefs_command", required=True)
    prefs_sub.add_parser("show", help="Show preferences")
    prefs_set = prefs_sub.add_parser("set", help="Set a preference")
    prefs_set.add_argument("key", choices=Preferences.keys())
    prefs_set.add_argument("value", help="New value; priority_order takes a comma list")
    prefs_reset = prefs_sub.add_parser("reset", help="Reset a preference to its default")
    prefs_reset.add_argument("key", choices=Preferences.keys())

    templates = subparsers.add_parser("templates", help="Template commands")
    templates_sub = templates.add_subparsers(dest="templates_command", required=True)
    templates_sub.add_parser("list", help="List templates")
    show = templates_sub.add_parser("show", help="Show one template")
    show.add_argument("template_id")
    rename = templates_sub.add_parser("rename", help="Rename a template")
    rename.add_argument("template_id")
    rename.add_argument("name")
    delete = templates_sub.add_parser("delete", help="Delete a template")
    delete.add_argument("template_id")

    return parser.parse_args(list(argv))


def _parse_preference_value(key: str, raw: str) -> object:
    match key:
        case "priority_order":
            return [part.strip() for part in raw.split(",") if part.strip()]
        case "prefer_individual_over_group" | "show_notifications":
            lowered = raw.strip().lower()
            if lowered in {"1", "true", "yes", "on"}:
                return True
            if lowered in {"0", "false", "no", "off"}:
                return False
            raise ValueError(f"Expected a boolean for {key}: {raw!r}")
        case _:
            return raw.strip()


def _signals_from_args(args: argparse.Namespace, stores: SqlStores) -> HostSignals:
    chat_character = None
    if args.chat:
        stores.chats.register(args.chat, character_name=args.character)
        chat_character = stores.chats.character_name(args.chat)
    if args.group:
        stores.groups.register(args.group, name=args.group_name or args.group, chat_id=args.chat)
    return HostSignals(
        group_id=args.group,
        group_name=args.group_name,
        character_index=args.character_index,
        character_name=args.character,
        model_name=args.model,
        chat_id=args.chat,
        chat_character_name=chat_character,
    )


def _build_cli_session(args: argparse.Namespace) -> tuple[LockSession, InMemoryHost]:
    config = get_engine_config()
    stores = build_sql_stores(config=config)
    host = InMemoryHost(signals=_signals_from_args(args, stores))
    notifier = RecordingNotifier()
    session = build_session(
        host=host,
        profiles=host,
        presets=host,
        structure=host,
        confirmation=StaticConfirmation(),
        notifier=notifier,
        settings=stores.settings,
        chats=stores.chats,
        groups=stores.groups,
        config=config,
    )
    return session, host


def _run_resolve(session: LockSession) -> None:
    resolved = session.orchestrator.get_current_locks()
    for item, winner in resolved:
        log.info("%-8s %s (%s)", item, winner.value or "-", winner.source or "no lock")
    for dimension, values in session.orchestrator.get_locks_by_dimension().items():
        described = ", ".join(f"{item}={value or '-'}" for item, value in values.items())
        log.info("  %-9s %s", dimension, described)


def _run_conflicts(session: LockSession) -> None:
    conflicts = session.orchestrator.get_conflicts()
    if not conflicts:
        log.info("No conflicting locks")
    for conflict in conflicts:
        described = ", ".join(
            f"{dimension}={value}" for dimension, value in conflict.values_by_dimension.items()
        )
        log.info("%s: %s", conflict.item, described)


def _run_apply(session: LockSession, host: InMemoryHost | None) -> None:
    if not asyncio.run(session.orchestrator.apply_locks_for_context()):
        raise CommandFailedError("Applying locks failed")
    if host is not None:
        for kind, value in host.switch_log:
            log.info("Switched %s to %s", kind, value)
        if not host.switch_log:
            log.info("Session already matches its locks")


def _run_lock(session: LockSession, args: argparse.Namespace) -> None:
    targets = [Dimension(target) for target in args.targets]
    if args.lock_command == "save":
        record = LockRecord(profile=args.profile, preset=args.preset, template=args.template)
        if record.is_empty:
            raise InvalidConfigurationError("Nothing to lock: pass --profile, --preset or --template")
        ok = asyncio.run(session.orchestrator.save_current_ui_locks(targets, record))
    else:
        ok = asyncio.run(session.orchestrator.clear_locks(targets))
    if not ok:
        raise CommandFailedError(f"lock {args.lock_command} failed")


def _run_prefs(session: LockSession, args: argparse.Namespace) -> None:
    if args.prefs_command == "set":
        session.store.update_preference(args.key, _parse_preference_value(args.key, args.value))
    elif args.prefs_command == "reset":
        session.store.reset_preference(args.key)
    for key, value in session.store.get_preferences().as_dict().items():
        log.info("%s = %s", key, value)


def _run_templates(session: LockSession, args: argparse.Namespace) -> None:
    manager = session.templates
    if args.templates_command == "list":
        for template in manager.list_templates():
            log.info("%s  %s  (%d prompts)", template.id, template.name, len(template.prompts))
    elif args.templates_command == "show":
        template = manager.get(args.template_id)
        if template is None:
            raise CommandFailedError(f"Template not found: {args.template_id}")
        log.info("%s  %s", template.id, template.name)
        if template.description:
            log.info("  %s", template.description)
        for entry in template.prompt_order or ():
            log.info("  [%s] %s", "x" if entry.enabled else " ", entry.identifier)
    elif args.templates_command == "rename":
        template = manager.rename(args.template_id, args.name)
        log.info("Renamed %s to %s", template.id, template.name)
    elif args.templates_command == "delete":
        if not manager.delete(args.template_id):
            raise CommandFailedError(f"Template not found: {args.template_id}")


def run_command(
    session: LockSession, args: argparse.Namespace, host: InMemoryHost | None = None
) -> None:
    if args.command == "resolve":
        _run_resolve(session)
    elif args.command == "apply":
        _run_apply(session, host)
    elif args.command == "conflicts":
        _run_conflicts(session)
    elif args.command == "lock":
        _run_lock(session, args)
    elif args.command == "prefs":
        _run_prefs(session, args)
    elif args.command == "templates":
        _run_templates(session, args)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "prefs" and parsed_args.prefs_command == "set":
            _parse_preference_value(parsed_args.key, parsed_args.value)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        session, host = _build_cli_session(parsed_args)
        run_command(session, parsed_args, host)
    except InvalidConfigurationError as exc:
        log.error("Invalid configuration: %s", exc)  # noqa: TRY400
        sys.exit(2)
    except (LockEngineError, CommandFailedError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
