from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from core.session import ConsoleSession
from core.settings import Settings
from providers.storage import StorageDriver


# -----------------------------
# Canonical session access
# -----------------------------

def get_session(request: Request) -> ConsoleSession:
    """
    Canonical session resolver.

    Source of truth: request.app.state.session (attached by create_app).
    """
    try:
        return request.app.state.session
    except AttributeError as exc:
        raise RuntimeError("ConsoleSession not initialized on app.state.") from exc


SessionDep = Annotated[ConsoleSession, Depends(get_session)]


def get_storage(request: Request) -> StorageDriver:
    """
    Connected StorageDriver, or NotConnectedError (401) when nothing is connected.
    """
    return get_session(request).require()


StorageDep = Annotated[StorageDriver, Depends(get_storage)]


def require_connection(request: Request) -> None:
    """Router-level guard for endpoints that need an active connection."""
    get_storage(request)


def get_app_settings(request: Request) -> Settings:
    """Settings the app was built with (create_app), not a fresh env read."""
    try:
        return request.app.state.settings
    except AttributeError as exc:
        raise RuntimeError("Settings not initialized on app.state.") from exc


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
