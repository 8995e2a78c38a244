"""
Tests for environment variable helpers.
"""

import pytest

from chowchow import MissingVariablesError, check_variables, make_env


class TestCheckVariables:
    def test_passes_when_all_set(self, monkeypatch):
        monkeypatch.setenv("CHOW_A", "1")
        monkeypatch.setenv("CHOW_B", "2")

        check_variables(["CHOW_A", "CHOW_B"])

    def test_lists_every_missing_variable(self, monkeypatch):
        monkeypatch.setenv("CHOW_A", "1")
        monkeypatch.delenv("CHOW_B", raising=False)
        monkeypatch.setenv("CHOW_C", "")

        with pytest.raises(MissingVariablesError) as info:
            check_variables(["CHOW_A", "CHOW_B", "CHOW_C"])

        assert info.value.names == ["CHOW_B", "CHOW_C"]
        assert str(info.value) == "Missing environment variables: CHOW_B, CHOW_C"


class TestMakeEnv:
    def test_collects_values(self, monkeypatch):
        monkeypatch.setenv("CHOW_A", "apple")

        assert make_env(["CHOW_A"]) == {"CHOW_A": "apple"}

    def test_fails_on_missing(self, monkeypatch):
        monkeypatch.delenv("CHOW_MISSING", raising=False)

        with pytest.raises(MissingVariablesError):
            make_env(["CHOW_MISSING"])
