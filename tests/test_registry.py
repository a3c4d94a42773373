from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tile_deck.core.errors import ConfigurationError, TransformError
from tile_deck.core.registry import TransformRegistry, TransformStrategy, safe_transform

from conftest import value_strategy


def test_register_overwrites_previous_strategy() -> None:
    registry = TransformRegistry()
    first = value_strategy()
    second = TransformStrategy(validate=lambda raw: True, transform=lambda raw: {"other": True})

    registry.register("value", first)
    registry.register("value", second)

    assert registry.resolve("value") is second
    assert registry.keys() == ["value"]


def test_resolve_unknown_key_returns_none_and_require_raises() -> None:
    registry = TransformRegistry()

    assert registry.resolve("missing") is None
    with pytest.raises(ConfigurationError, match="missing") as excinfo:
        registry.require("missing")
    assert excinfo.value.key == "missing"


def test_safe_transform_returns_record_for_valid_payload() -> None:
    assert safe_transform(value_strategy(), {"v": 3}, "value") == {"v": 3}


def test_safe_transform_is_idempotent() -> None:
    strategy = value_strategy()
    raw = {"v": 7, "extra": "ignored"}

    assert safe_transform(strategy, raw, "value") == safe_transform(strategy, raw, "value")


def test_safe_transform_rejects_invalid_payload() -> None:
    with pytest.raises(TransformError) as excinfo:
        safe_transform(value_strategy(), {"v": "nope"}, "value")

    assert excinfo.value.key == "value"
    assert excinfo.value.cause is None


def test_safe_transform_wraps_transform_exception() -> None:
    strategy = TransformStrategy(validate=lambda raw: True, transform=lambda raw: raw["absent"])

    with pytest.raises(TransformError) as excinfo:
        safe_transform(strategy, {}, "broken")

    assert isinstance(excinfo.value.cause, KeyError)
    assert excinfo.value.__cause__ is excinfo.value.cause
    assert excinfo.value.key == "broken"


def test_safe_transform_wraps_validate_exception() -> None:
    def validate(raw):
        raise RuntimeError("boom")

    strategy = TransformStrategy(validate=validate, transform=lambda raw: {})

    with pytest.raises(TransformError) as excinfo:
        safe_transform(strategy, {}, "broken")
    assert isinstance(excinfo.value.cause, RuntimeError)


def test_safe_transform_rejects_missing_record() -> None:
    strategy = TransformStrategy(validate=lambda raw: True, transform=lambda raw: None)

    with pytest.raises(TransformError, match="no record"):
        safe_transform(strategy, {}, "empty")


def test_safe_transform_rejects_non_dict_record() -> None:
    strategy = TransformStrategy(validate=lambda raw: True, transform=lambda raw: [1, 2])

    with pytest.raises(TransformError, match="expected a dict"):
        safe_transform(strategy, {}, "listy")


def test_safe_transform_rejects_unserializable_record() -> None:
    strategy = TransformStrategy(
        validate=lambda raw: True,
        transform=lambda raw: {"at": datetime(2024, 1, 1, tzinfo=timezone.utc)},
    )

    with pytest.raises(TransformError, match="not JSON serializable") as excinfo:
        safe_transform(strategy, {}, "dated")
    assert isinstance(excinfo.value.cause, TypeError)
