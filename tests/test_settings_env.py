"""Tests for the environment parsing helpers used by settings."""

from __future__ import annotations

import pytest

from vizboard.settings import _env_bool, _env_csv, _env_int

pytestmark = pytest.mark.unit


def test_env_helpers_fall_back_to_defaults(monkeypatch) -> None:
    """Unset variables return the given defaults."""

    monkeypatch.delenv("VIZBOARD_TEST_VALUE", raising=False)
    assert _env_bool("VIZBOARD_TEST_VALUE", default=True) is True
    assert _env_int("VIZBOARD_TEST_VALUE", default=7) == 7
    assert _env_csv("VIZBOARD_TEST_VALUE", default=["a"]) == ["a"]


def test_env_helpers_parse_set_values(monkeypatch) -> None:
    """Integers are trimmed and lists drop empty parts."""

    monkeypatch.setenv("VIZBOARD_TEST_VALUE", " 42 ")
    assert _env_int("VIZBOARD_TEST_VALUE", default=0) == 42

    monkeypatch.setenv("VIZBOARD_TEST_VALUE", " example.com, ,localhost ")
    assert _env_csv("VIZBOARD_TEST_VALUE", default=[]) == ["example.com", "localhost"]

    monkeypatch.setenv("VIZBOARD_TEST_VALUE", "Yes")
    assert _env_bool("VIZBOARD_TEST_VALUE", default=False) is True
