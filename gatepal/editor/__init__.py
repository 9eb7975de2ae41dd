"""
gatepal/editor

Tabbed society editor: draft, validation, assembly and the SocietyEditor
state machine driven by the societies blueprint.
"""

from .draft import TABS, Draft, blank_draft, default_draft, draft_from_record
from .geolocation import GeolocationError, GeolocationProvider, Position, ReportedGeolocation
from .session import SocietyEditor
from .store import EditorStore, RecordCache, get_editor_store, get_record_cache, init_editor_state
from .validation import validate_tab
from .assembler import assemble_record

__all__ = [
    "TABS",
    "Draft",
    "blank_draft",
    "default_draft",
    "draft_from_record",
    "GeolocationError",
    "GeolocationProvider",
    "Position",
    "ReportedGeolocation",
    "SocietyEditor",
    "EditorStore",
    "RecordCache",
    "get_editor_store",
    "get_record_cache",
    "init_editor_state",
    "validate_tab",
    "assemble_record",
]
