"""Unit tests for core.wide_event module.

Tests the ContextVar-based wide event lifecycle: init, set, get, clear,
and safe no-op behavior outside request context.
"""

import contextvars

import pytest

from core.wide_event import (
    clear_wide_event,
    get_wide_event,
    init_wide_event,
    set_wide_event_fields,
)


@pytest.mark.unit
class TestWideEventLifecycle:
    def test_init_returns_empty_dict(self):
        assert init_wide_event() == {}

    def test_set_fields_on_fresh_event(self):
        init_wide_event()

        set_wide_event_fields(property_id="p1")

        assert get_wide_event() == {"property_id": "p1"}

    def test_set_fields_accumulates_and_overwrites(self):
        init_wide_event()
        set_wide_event_fields(a=1, key="old")
        set_wide_event_fields(b=2, key="new")

        assert get_wide_event() == {"a": 1, "b": 2, "key": "new"}

    def test_init_returns_the_live_dict(self):
        event = init_wide_event()
        set_wide_event_fields(city="Austin")

        assert event["city"] == "Austin"

    def test_clear_resets_to_empty(self):
        init_wide_event()
        set_wide_event_fields(a=1)

        clear_wide_event()

        assert get_wide_event() == {}


@pytest.mark.unit
class TestOutsideRequestContext:
    def test_get_returns_empty_dict_when_never_initialized(self):
        ctx = contextvars.Context()

        assert ctx.run(get_wide_event) == {}

    def test_set_is_noop_when_never_initialized(self):
        ctx = contextvars.Context()

        ctx.run(set_wide_event_fields, property_id="p1")

        assert ctx.run(get_wide_event) == {}
