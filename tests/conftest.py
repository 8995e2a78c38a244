"""Shared fixtures for chowchow tests."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from chowchow import Application, Module, module


@module(name="Recording", description="Records every lifecycle call")
class RecordingModule(Module):
    """A module that appends each hook call to a shared list."""

    def __init__(self, label: str, calls: list[str], fields: dict[str, Any] | None = None):
        super().__init__()
        self.label = label
        self.calls = calls
        self.fields = fields or {}

    def check_environment(self) -> None:
        self.calls.append(f"check:{self.label}")

    async def setup_module(self) -> None:
        self.calls.append(f"setup:{self.label}")

    async def clear_module(self) -> None:
        self.calls.append(f"clear:{self.label}")

    def extend_server(self, server) -> None:
        self.calls.append(f"extend:{self.label}")

    def extend_context(self, ctx):
        return dict(self.fields)


@module(name="Geoff")
class GeoffModule(Module):
    """Contributes a name to every context."""

    def extend_context(self, ctx):
        return {"name": "geoff"}


@pytest.fixture
def calls() -> list[str]:
    """A fresh call log."""
    return []


@pytest.fixture
def app() -> Application:
    """Create a fresh Application for testing."""
    return Application(env={"NAME": "Geoff Testington"})


@pytest.fixture
def make_client():
    """Build an httpx client that talks to an application's server in-process."""

    def factory(application: Application) -> httpx.AsyncClient:
        transport = httpx.ASGITransport(app=application.server)
        return httpx.AsyncClient(transport=transport, base_url="http://test")

    return factory


@pytest.fixture
def start_local():
    """Start an application on a free local port."""

    async def start(application: Application, **overrides: Any) -> None:
        await application.start(port=0, host="127.0.0.1", **overrides)

    return start


@pytest.fixture
def recorder(calls):
    """Build RecordingModules that share the ``calls`` log."""

    def factory(label: str, **fields: Any) -> RecordingModule:
        return RecordingModule(label, calls, fields)

    return factory


@pytest.fixture
def geoff() -> GeoffModule:
    return GeoffModule()
