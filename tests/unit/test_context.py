"""Tests for the request context and what reads it."""

import logging

import pytest

from crm_access.middleware.request_id import resolve_request_id
from crm_access.middleware.security_headers import security_headers
from crm_access.shared.context import (
    clear_current_user,
    get_actor_context,
    get_current_actor_id,
    get_request_id,
    reset_request_id,
    set_current_user,
    set_request_id,
)
from crm_access.shared.enums import ActorType
from crm_access.shared.telemetry.logging import RequestContextFilter


def test_defaults_to_system() -> None:
    clear_current_user()
    ctx = get_actor_context()
    assert ctx.user_id is None
    assert ctx.actor_type is ActorType.SYSTEM


def test_set_and_clear() -> None:
    set_current_user("u1", "T1", ip_address="10.0.0.1")
    ctx = get_actor_context()
    assert (ctx.user_id, ctx.tenant_id, ctx.ip_address) == ("u1", "T1", "10.0.0.1")
    assert ctx.actor_type is ActorType.USER
    clear_current_user()
    assert get_current_actor_id() is None


def test_user_actor_needs_id() -> None:
    with pytest.raises(ValueError):
        set_current_user(None)


def test_request_id_bound_and_reset() -> None:
    token = set_request_id("req-1")
    assert get_request_id() == "req-1"
    reset_request_id(token)
    assert get_request_id() is None


def test_log_records_carry_request_and_actor() -> None:
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
    token = set_request_id("req-2")
    set_current_user("u9", "T1")
    try:
        assert RequestContextFilter().filter(record)
    finally:
        clear_current_user()
        reset_request_id(token)
    assert record.request_id == "req-2"
    assert record.actor == "u9"


def test_log_records_outside_request() -> None:
    clear_current_user()
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
    RequestContextFilter().filter(record)
    assert record.request_id == "-"
    assert record.actor == ActorType.SYSTEM.value


def test_security_headers_hsts_only_over_https() -> None:
    assert b"strict-transport-security" in dict(security_headers(True))
    assert b"strict-transport-security" not in dict(security_headers(False))


def test_resolve_request_id() -> None:
    assert resolve_request_id("abc_DEF-1") == "abc_DEF-1"
    assert len(resolve_request_id("x" * 65)) == 36
    assert len(resolve_request_id(None)) == 36
