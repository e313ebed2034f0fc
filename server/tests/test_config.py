"""Tests for environment parsing in server.config."""

from __future__ import annotations

import pytest

from server.config import _int_env, parse_externals
from workbench.kernel.preview import DEFAULT_EXTERNALS


class TestParseExternals:
    def test_empty_means_defaults(self):
        assert parse_externals("") == DEFAULT_EXTERNALS

    def test_overrides_merge_over_defaults(self):
        externals = parse_externals('{"left-pad": "https://esm.sh/left-pad", "react": "https://cdn/react"}')
        assert externals["left-pad"] == "https://esm.sh/left-pad"
        assert externals["react"] == "https://cdn/react"
        assert externals["react-dom/client"] == DEFAULT_EXTERNALS["react-dom/client"]

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '{"react": 18}'])
    def test_invalid(self, raw):
        with pytest.raises(RuntimeError):
            parse_externals(raw)


class TestIntEnv:
    def test_default(self, monkeypatch):
        monkeypatch.delenv("MAX_WORKSPACES", raising=False)
        assert _int_env("MAX_WORKSPACES", 7) == 7

    def test_value(self, monkeypatch):
        monkeypatch.setenv("MAX_WORKSPACES", "12")
        assert _int_env("MAX_WORKSPACES", 7) == 12

    @pytest.mark.parametrize("raw", ["many", "0"])
    def test_invalid(self, monkeypatch, raw):
        monkeypatch.setenv("MAX_WORKSPACES", raw)
        with pytest.raises(RuntimeError):
            _int_env("MAX_WORKSPACES", 7)
