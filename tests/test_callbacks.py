from typing import Any, Callable, List

import pytest

from adminkit.callbacks import CallbackRegistry, STAGES, SAVE, DESTROY


def test_interceptors_run_in_registration_order() -> None:
    calls: List[str] = []
    registry = CallbackRegistry()

    def first(subject: Any, next_link: Callable) -> None:
        calls.append("first:before")
        next_link()
        calls.append("first:after")

    def second(subject: Any, next_link: Callable) -> None:
        calls.append("second:before")
        next_link()
        calls.append("second:after")

    registry.register(SAVE, first)
    registry.register(SAVE, second)

    def core() -> str:
        calls.append("core")
        return "saved"

    result = registry.run(SAVE, object(), core)

    assert result == "saved"
    assert calls == ["first:before", "second:before", "core", "second:after", "first:after"]


def test_short_circuit_skips_core_and_later_interceptors() -> None:
    calls: List[str] = []
    registry = CallbackRegistry()
    registry.register(DESTROY, lambda subject, next_link: calls.append("veto"))
    registry.register(DESTROY, lambda subject, next_link: calls.append("never"))

    result = registry.run(DESTROY, "record", lambda: calls.append("core"))

    assert result is None
    assert calls == ["veto"]


def test_errors_propagate_unchanged() -> None:
    registry = CallbackRegistry()

    def failing(subject: Any, next_link: Callable) -> None:
        raise KeyError("boom")

    registry.register(SAVE, failing)
    with pytest.raises(KeyError, match="boom"):
        registry.run(SAVE, None, lambda: None)

    registry = CallbackRegistry()
    with pytest.raises(ZeroDivisionError):
        registry.run(SAVE, None, lambda: 1 / 0)


def test_before_and_after_hooks() -> None:
    calls: List[str] = []
    registry = CallbackRegistry()
    registry.before(SAVE, lambda subject: calls.append(f"before {subject}"))
    registry.after(SAVE, lambda subject: calls.append(f"after {subject}"))

    registry.run(SAVE, "post", lambda: calls.append("core"))

    assert calls == ["before post", "core", "after post"]


def test_after_hook_skipped_when_halted() -> None:
    calls: List[str] = []
    registry = CallbackRegistry()
    registry.after(SAVE, lambda subject: calls.append("after"))
    registry.register(SAVE, lambda subject, next_link: None)

    registry.run(SAVE, "post", lambda: calls.append("core"))

    assert calls == []


def test_on_decorator_registers() -> None:
    registry = CallbackRegistry()

    @registry.on(SAVE)
    def audit(subject: Any, next_link: Callable) -> None:
        next_link()

    assert registry.callbacks(SAVE) == (audit,)


def test_frozen_registry_rejects_registration() -> None:
    registry = CallbackRegistry().freeze()
    with pytest.raises(RuntimeError):
        registry.register(SAVE, lambda subject, next_link: next_link())
    assert registry.frozen


def test_unknown_stage() -> None:
    registry = CallbackRegistry()
    assert registry.stages == STAGES
    with pytest.raises(ValueError):
        registry.register("publish", lambda subject, next_link: next_link())
    with pytest.raises(ValueError):
        registry.run("publish", None)


def test_run_without_core_action() -> None:
    seen: List[Any] = []
    registry = CallbackRegistry()
    registry.before("build", seen.append)
    assert registry.run("build", "new record") is None
    assert seen == ["new record"]
