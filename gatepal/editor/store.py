"""
gatepal/editor/store.py

Process-local state shared by requests:

- EditorStore: open SocietyEditor instances keyed by an opaque token. An
  editor is "mounted" while it is registered here.
- RecordCache: canonical society records seen by this process, used to open
  an editor without a directory round trip.

Both are guarded by a threading.Lock because the Flask server can handle
requests on several threads.
"""

from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from typing import Dict, Iterable, Optional

from flask import Flask, current_app

from ..records import Society
from .session import SocietyEditor

EDITORS_KEY = "gatepal.editors"
RECORDS_KEY = "gatepal.records"

DEFAULT_MAX_OPEN_EDITORS = 200


class EditorStore:
    def __init__(self, max_open: int = DEFAULT_MAX_OPEN_EDITORS):
        self.max_open = max_open
        self._lock = threading.Lock()
        self._editors: "OrderedDict[str, SocietyEditor]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._editors)

    def open(self, editor: SocietyEditor) -> str:
        """Register an editor and return its token. Oldest editors are evicted past max_open."""
        token = uuid.uuid4().hex
        with self._lock:
            editor.mounted = True
            self._editors[token] = editor
            while len(self._editors) > self.max_open:
                _, evicted = self._editors.popitem(last=False)
                evicted.close()
        return token

    def get(self, token: str, owner_id: Optional[str] = None) -> Optional[SocietyEditor]:
        with self._lock:
            editor = self._editors.get(token)
            if editor is None:
                return None
            if not editor.mounted:
                del self._editors[token]
                return None
            if owner_id is not None and editor.owner_id != owner_id:
                return None
            self._editors.move_to_end(token)
            return editor

    def discard(self, token: str) -> None:
        with self._lock:
            editor = self._editors.pop(token, None)
        if editor is not None:
            editor.close()


class RecordCache:
    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, Society] = {}

    def get(self, society_id: str) -> Optional[Society]:
        with self._lock:
            record = self._records.get(society_id)
            return record.clone() if record is not None else None

    def put(self, record: Society) -> None:
        with self._lock:
            self._records[record.id] = record.clone()

    def replace_all(self, records: Iterable[Society]) -> None:
        fresh = {r.id: r.clone() for r in records}
        with self._lock:
            self._records = fresh

    def remove(self, society_id: str) -> None:
        with self._lock:
            self._records.pop(society_id, None)


def init_editor_state(app: Flask) -> None:
    app.extensions[EDITORS_KEY] = EditorStore(app.config.get("EDITOR_MAX_OPEN", DEFAULT_MAX_OPEN_EDITORS))
    app.extensions[RECORDS_KEY] = RecordCache()


def get_editor_store() -> EditorStore:
    return current_app.extensions[EDITORS_KEY]


def get_record_cache() -> RecordCache:
    return current_app.extensions[RECORDS_KEY]
