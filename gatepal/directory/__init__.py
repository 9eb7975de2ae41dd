"""
gatepal/directory/__init__.py

Directory service: the owner of canonical society records.

The console never persists a society itself; it hands records to a directory
backend and treats the echoed record as the source of truth (canonical ids,
timestamps, PIN).

Backends:
- DatabaseDirectory: Flask-SQLAlchemy tables in this console's database.
- RemoteDirectory: the GatePal backend REST API (httpx).

The backend is selected by DIRECTORY_BACKEND and attached to the app in
create_app() via init_directory(app).
"""

from __future__ import annotations

import abc
from typing import Dict, List, Optional

from flask import Flask, current_app

from ..records import Society, SocietyAdmin

EXTENSION_KEY = "gatepal.directory"


class DirectoryError(Exception):
    """A directory call failed. str(error) is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SocietyNotFound(DirectoryError):
    """The requested society (or admin) does not exist."""


class DirectoryService(abc.ABC):
    """Operations the console consumes from the directory."""

    @abc.abstractmethod
    def list_societies(self) -> List[Society]:
        ...

    @abc.abstractmethod
    def get_society(self, society_id: str) -> Optional[Society]:
        """Return the canonical record, or None when it does not exist."""

    @abc.abstractmethod
    def create_society(self, record: Society) -> Society:
        ...

    @abc.abstractmethod
    def update_society(self, society_id: str, record: Society) -> Society:
        ...

    @abc.abstractmethod
    def toggle_society_status(self, society_id: str) -> Society:
        ...

    @abc.abstractmethod
    def suspend_society(self, society_id: str) -> Society:
        ...

    @abc.abstractmethod
    def list_admins(self, society_id: str) -> List[SocietyAdmin]:
        ...

    @abc.abstractmethod
    def create_admin(self, society_id: str, fields: Dict[str, str]) -> SocietyAdmin:
        ...

    @abc.abstractmethod
    def update_admin(self, society_id: str, admin_id: str, fields: Dict[str, str]) -> SocietyAdmin:
        ...

    @abc.abstractmethod
    def toggle_admin_status(self, society_id: str, admin_id: str) -> SocietyAdmin:
        ...

    @abc.abstractmethod
    def delete_admin(self, society_id: str, admin_id: str) -> None:
        ...

    def all_admins(self) -> List[SocietyAdmin]:
        """Admins across every society (used by dashboards and admin lists)."""
        admins: List[SocietyAdmin] = []
        for society in self.list_societies():
            admins.extend(society.society_admins)
        return admins


def build_directory(app: Flask) -> DirectoryService:
    """Create the backend configured for this app."""
    backend = (app.config.get("DIRECTORY_BACKEND") or "database").strip().lower()

    if backend == "database":
        from .database import DatabaseDirectory

        return DatabaseDirectory()

    if backend == "remote":
        from .remote import RemoteDirectory

        return RemoteDirectory(
            base_url=app.config["DIRECTORY_API_BASE_URL"],
            token=app.config.get("DIRECTORY_API_TOKEN"),
            timeout=app.config.get("DIRECTORY_API_TIMEOUT", 15.0),
        )

    raise ValueError(f"Unknown DIRECTORY_BACKEND: {backend!r}")


def init_directory(app: Flask) -> None:
    app.extensions[EXTENSION_KEY] = build_directory(app)


def get_directory() -> DirectoryService:
    """Directory backend of the current app."""
    return current_app.extensions[EXTENSION_KEY]
