from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import NoReturn

import pytest

from genlocks.adapters.memory import (
    InMemoryChatMetadataStore,
    InMemoryGroupStore,
    InMemoryHost,
    InMemorySettingsStore,
)
from genlocks.domain.appliers import PresetApplier, ProfileApplier, TemplateApplier
from genlocks.domain.context import ContextProvider
from genlocks.domain.errors import HostOperationError, TemplateNotFoundError
from genlocks.domain.lock_store import LockStore
from tests.helpers.host import FakeClock, character_signals, make_template


def _provider(host: InMemoryHost) -> ContextProvider:
    return ContextProvider(host, cache_seconds=60.0, clock=FakeClock())


def _template_applier(host: InMemoryHost) -> tuple[TemplateApplier, LockStore]:
    store = LockStore(InMemorySettingsStore(), InMemoryChatMetadataStore(), InMemoryGroupStore())
    store.save_template(make_template("tmpl_a", contents={"main": "A", "jb": "A jailbreak"}))
    store.save_template(make_template("tmpl_b", contents={"main": "B"}))
    return TemplateApplier(_provider(host), host, store), store


def test_none_value_is_a_successful_no_op() -> None:
    host = InMemoryHost(signals=character_signals())
    applier = PresetApplier(_provider(host), host)
    token = _provider(host).get_current().token

    assert asyncio.run(applier.apply(None, token)) is True
    assert host.switch_log == []


def test_applying_the_active_value_twice_switches_once() -> None:
    host = InMemoryHost(signals=character_signals())
    provider = _provider(host)
    applier = PresetApplier(provider, host)
    token = provider.get_current().token

    assert asyncio.run(applier.apply("Creative", token)) is True
    assert asyncio.run(applier.apply("Creative", token)) is True

    assert host.switch_log == [("preset", "Creative")]


def test_context_moved_before_switch_skips_it() -> None:
    host = InMemoryHost(signals=character_signals("Alice"))
    provider = _provider(host)
    applier = PresetApplier(provider, host)
    token = provider.get_current().token

    host.move_to(character_name="Bob", character_index=1, chat_id="chat-bob")

    assert asyncio.run(applier.apply("Creative", token)) is False
    assert host.switch_log == []
    assert host.preset is None


def test_context_moved_during_switch_reports_failure() -> None:
    host = InMemoryHost(signals=character_signals("Alice"))
    provider = _provider(host)
    applier, _ = _template_applier(host)
    token = provider.get_current().token
    host.after_switch = lambda _kind, _value: host.move_to(chat_id="other-chat")

    assert asyncio.run(applier.apply("tmpl_a", token)) is False
    assert applier.get_current_value() is None


def test_profile_switch_changing_the_model_is_not_stale() -> None:
    host = InMemoryHost(
        signals=character_signals(model_name="gpt-4o"),
        profile_models={"Claude": "claude-sonnet"},
    )
    provider = _provider(host)
    applier = ProfileApplier(provider, host)
    token = provider.get_current().token

    assert asyncio.run(applier.apply("Claude", token)) is True
    assert host.signals.model_name == "claude-sonnet"
    assert applier.get_current_value() == "Claude"


def test_host_failure_raises_host_operation_error() -> None:
    host = InMemoryHost(signals=character_signals(), profiles={"Known"})
    provider = _provider(host)
    applier = ProfileApplier(provider, host)

    with pytest.raises(HostOperationError) as exc:
        asyncio.run(applier.apply("Unknown", provider.get_current().token))

    assert exc.value.item == "profile"


def test_template_apply_replaces_prompt_structure() -> None:
    host = InMemoryHost(signals=character_signals())
    applier, _ = _template_applier(host)
    token = _provider(host).get_current().token

    assert asyncio.run(applier.apply("tmpl_a", token)) is True

    assert [prompt.identifier for prompt in host.prompts()] == ["main", "jb"]
    assert applier.compare_with_template("tmpl_a") is True
    assert applier.compare_with_template("tmpl_b") is False
    assert applier.get_current_value() == "tmpl_a"


def test_template_drift_clears_current_value() -> None:
    host = InMemoryHost(signals=character_signals())
    applier, _ = _template_applier(host)
    asyncio.run(applier.apply("tmpl_a", _provider(host).get_current().token))

    host.prompt_list[0] = replace(host.prompt_list[0], content="edited by hand")

    assert applier.compare_with_template("tmpl_a") is False
    assert applier.get_current_value() is None


def test_template_comparison_ignores_trigger_order_but_not_role() -> None:
    host = InMemoryHost(signals=character_signals())
    applier, store = _template_applier(host)
    template = store.get_template("tmpl_b")
    assert template is not None
    main = replace(template.prompts["main"], injection_trigger=("normal", "swipe"))
    store.save_template(replace(template, prompts={"main": main}))
    asyncio.run(applier.apply("tmpl_b", _provider(host).get_current().token))

    host.prompt_list[0] = replace(host.prompt_list[0], injection_trigger=("swipe", "normal"))
    assert applier.compare_with_template("tmpl_b") is True

    host.prompt_list[0] = replace(host.prompt_list[0], role="user")
    assert applier.compare_with_template("tmpl_b") is False


def test_missing_template_raises() -> None:
    host = InMemoryHost(signals=character_signals())
    applier, _ = _template_applier(host)

    with pytest.raises(TemplateNotFoundError):
        applier.compare_with_template("tmpl_missing")
    with pytest.raises(TemplateNotFoundError):
        asyncio.run(applier.apply("tmpl_missing", _provider(host).get_current().token))


class _UnreachableHost(InMemoryHost):
    def current_preset(self) -> NoReturn:
        raise ConnectionError("host closed the socket")

    def prompts(self) -> NoReturn:
        raise ConnectionError("host closed the socket")


def test_host_read_failures_raise_host_operation_error() -> None:
    host = _UnreachableHost(signals=character_signals())
    provider = _provider(host)
    preset = PresetApplier(provider, host)
    template, _ = _template_applier(host)

    with pytest.raises(HostOperationError) as preset_error:
        asyncio.run(preset.apply("Creative", provider.get_current().token))
    assert preset_error.value.item == "preset"
    with pytest.raises(HostOperationError) as template_error:
        template.compare_with_template("tmpl_a")
    assert template_error.value.item == "template"
    assert host.switch_log == []
