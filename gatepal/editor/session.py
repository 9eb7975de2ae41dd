"""
gatepal/editor/session.py

SocietyEditor: state machine behind the tabbed create/edit society screen.

One editor instance owns one draft. The web layer keeps instances in an
EditorStore between requests and drives them with the methods below:

- initialize(): build the draft (defaults, local cache, or directory fetch);
- set_field / wing / gate / admin mutators: edit the draft and clear the
  error keys they touch;
- validate / go_to / next / previous: per-tab validation and navigation;
- submit(): validate every tab, assemble the canonical record and hand it to
  the directory;
- request_location(): prefill coordinates from a geolocation provider.

Validation problems are data in `errors` and never raise. Directory failures
become a redirect reason (initialization) or a notification (submit).
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..directory import DirectoryError, DirectoryService, SocietyNotFound
from ..records import Society, parse_decimal, rate_breakdown, utcnow_iso
from .assembler import assemble_record
from .draft import (
    ADDRESS_MAX_LENGTH,
    ADMIN_MOBILE_MAX_LENGTH,
    ADMIN_NAME_MAX_LENGTH,
    GATE_DIRECTIONS,
    GATE_NAME_MAX_LENGTH,
    MAX_TOTAL_UNITS,
    NOTES_MAX_LENGTH,
    READ_ONLY_FIELDS,
    SOCIETY_NAME_MAX_LENGTH,
    TAB_FIELDS,
    TABS,
    UNIT_NAME_MAX_LENGTH,
    VEHICLE_LIMIT_FIELDS,
    WING_NAME_MAX_LENGTH,
    DraftAdmin,
    DraftGate,
    DraftUnit,
    DraftWing,
    blank_draft,
    default_draft,
    digits_only,
    draft_from_record,
    generate_pin,
    new_id,
    sanitize_name,
)
from .geolocation import (
    MAXIMUM_AGE_SECONDS,
    NOT_SUPPORTED_MESSAGE,
    REQUEST_TIMEOUT_SECONDS,
    GeolocationError,
    GeolocationProvider,
)
from .validation import validate_tab

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Society not found."
LOAD_FAILED_MESSAGE = "Failed to load society."
SAVE_FAILED_MESSAGE = "Failed to save society. Please try again."
CREATED_MESSAGE = "Society created successfully."
UPDATED_MESSAGE = "Society updated successfully."

ADMIN_FIELDS = ("name", "mobile", "email", "status")


class SocietyEditor:
    def __init__(
        self,
        society_id: Optional[str] = None,
        *,
        directory: DirectoryService,
        notifier,
        cache=None,
        geolocation: Optional[GeolocationProvider] = None,
        acting_user: Optional[str] = "Admin",
        pin_factory: Callable[[], str] = generate_pin,
        clock: Callable[[], str] = utcnow_iso,
        owner_id: Optional[str] = None,
    ):
        self.society_id = society_id
        self.directory = directory
        self.notifier = notifier
        self.cache = cache
        self.geolocation = geolocation
        self.acting_user = acting_user or "Admin"
        self.pin_factory = pin_factory
        self.clock = clock
        self.owner_id = owner_id
        # Held by the editor view for the whole request.
        self.lock = threading.RLock()

        self.draft = blank_draft()
        self.errors: Dict[str, str] = {}
        self.active_tab = TABS[0]

        # False once the editor is cancelled, saved or evicted; late results are dropped.
        self.mounted = True
        self._init_started = False
        self.initialized = False
        self.is_fetching = False
        self.is_submitting = False
        self.is_locating = False

        self.redirect_reason: Optional[str] = None
        self.not_found = False
        self.location_error: Optional[str] = None
        self.auto_location_pending = False

        self.original: Optional[Society] = None
        self.saved: Optional[Society] = None

    @property
    def is_edit_mode(self) -> bool:
        return self.society_id is not None

    def close(self) -> None:
        self.mounted = False

    # ---------------------------------------------------------------------
    # Initialization
    # ---------------------------------------------------------------------
    def initialize(self) -> None:
        """Build the draft. Runs at most once per editor."""
        if self._init_started:
            return
        self._init_started = True

        if self.society_id is None:
            self.draft = default_draft(self.pin_factory())
            self.initialized = True
            self._locate_on_create()
            return

        record = self.cache.get(self.society_id) if self.cache is not None else None
        if record is None:
            record = self._fetch()
            if record is None:
                return
            if self.cache is not None:
                self.cache.put(record)

        self._populate(record)

    def _fetch(self) -> Optional[Society]:
        self.is_fetching = True
        failure = None
        record = None
        try:
            record = self.directory.get_society(self.society_id)
        except SocietyNotFound:
            record = None
        except DirectoryError as exc:
            failure = exc.message or LOAD_FAILED_MESSAGE
        finally:
            self.is_fetching = False

        if not self.mounted:
            logger.debug("Discarding fetched society %s: editor closed", self.society_id)
            return None

        if failure is not None:
            logger.warning("Loading society %s failed: %s", self.society_id, failure)
            self.redirect_reason = failure
            return None

        if record is None:
            logger.info("Society %s not found", self.society_id)
            self.not_found = True
            self.redirect_reason = NOT_FOUND_MESSAGE
            return None

        return record

    def _populate(self, record: Society) -> None:
        self.original = record.clone()
        self.draft = draft_from_record(record)
        self.initialized = True

    def _locate_on_create(self) -> None:
        # Without a server-side provider the page asks the browser instead.
        if self.geolocation is None:
            self.auto_location_pending = True
            return
        self.request_location(skip_if_filled=True)

    # ---------------------------------------------------------------------
    # Error map helpers
    # ---------------------------------------------------------------------
    def _clear_error(self, *keys: str) -> None:
        for key in keys:
            self.errors.pop(key, None)

    def _clear_prefix(self, prefix: str) -> None:
        """Drop the key equal to `prefix` and every key below it."""
        nested = prefix + "."
        for key in [k for k in self.errors if k == prefix or k.startswith(nested)]:
            del self.errors[key]

    def errors_for(self, prefix: str) -> Dict[str, str]:
        nested = prefix + "."
        return {k: v for k, v in self.errors.items() if k == prefix or k.startswith(nested)}

    # ---------------------------------------------------------------------
    # Scalar fields
    # ---------------------------------------------------------------------
    def set_field(self, tab: str, field: str, value) -> None:
        if field not in TAB_FIELDS.get(tab, ()):
            raise ValueError(f"Unknown field {tab}.{field}")
        if field in READ_ONLY_FIELDS:
            raise ValueError(f"{field} is read-only")

        fields = self.draft.fields
        value = self._normalize_field(field, "" if value is None else str(value))
        if getattr(fields, field) == value:
            return

        setattr(fields, field, value)
        self._clear_error(f"{tab}.{field}")

        if field == "country":
            fields.city = ""
            self._clear_error("basic.city")
        elif field == "base_rate":
            base = parse_decimal(value)
            gst, total = rate_breakdown(base if base is not None else Decimal("0"))
            fields.gst = str(gst)
            fields.rate_incl_gst = str(total)
            self._clear_error("engagement.gst", "engagement.rate_incl_gst")

    def set_fields(self, tab: str, values: Mapping[str, str]) -> None:
        """Apply posted values for the editable fields of a tab (country before city)."""
        names = [n for n in TAB_FIELDS.get(tab, ()) if n not in READ_ONLY_FIELDS and n in values]
        if "country" in names:
            names.remove("country")
            names.insert(0, "country")
        for name in names:
            self.set_field(tab, name, values[name])

    @staticmethod
    def _normalize_field(field: str, value: str) -> str:
        if field == "society_name":
            return sanitize_name(value, SOCIETY_NAME_MAX_LENGTH)
        if field == "address":
            return value[:ADDRESS_MAX_LENGTH]
        if field == "notes":
            return value[:NOTES_MAX_LENGTH]
        if field in VEHICLE_LIMIT_FIELDS:
            return digits_only(value)
        return value

    # ---------------------------------------------------------------------
    # Wings and units
    # ---------------------------------------------------------------------
    def _wing_key(self, wing: DraftWing) -> str:
        return f"structure.wings.{wing.id}"

    def add_wing(self) -> DraftWing:
        wing = DraftWing(id=new_id("wing"), expanded=True)
        self.draft.wings.append(wing)
        self._clear_error("structure.general")
        return wing

    def update_wing_name(self, index: int, name: str) -> None:
        wing = self.draft.wings[index]
        wing.name = sanitize_name(name, WING_NAME_MAX_LENGTH)
        self._clear_error(f"{self._wing_key(wing)}.name")

    def resize_wing_units(self, index: int, value) -> None:
        """Set a wing's unit count; new units get `<wing>-<n>` labels."""
        wing = self.draft.wings[index]
        digits = digits_only(value)
        total = min(int(digits) if digits else 0, MAX_TOTAL_UNITS)

        if total > len(wing.units):
            prefix = wing.name.strip() or "Unit"
            for n in range(len(wing.units) + 1, total + 1):
                wing.units.append(
                    DraftUnit(id=new_id("unit"), number=sanitize_name(f"{prefix}-{n}", UNIT_NAME_MAX_LENGTH))
                )
        elif total < len(wing.units):
            for unit in wing.units[total:]:
                self._clear_prefix(f"{self._wing_key(wing)}.units.{unit.id}")
            del wing.units[total:]

        wing.total_units = total
        self._clear_error(f"{self._wing_key(wing)}.total_units")
        if total > 0:
            self._clear_error("structure.general")

    def update_unit_number(self, wing_index: int, unit_index: int, number: str) -> None:
        wing = self.draft.wings[wing_index]
        unit = wing.units[unit_index]
        unit.number = sanitize_name(number, UNIT_NAME_MAX_LENGTH)
        self._clear_error(f"{self._wing_key(wing)}.units.{unit.id}")

    def remove_wing(self, index: int) -> None:
        wing = self.draft.wings.pop(index)
        self._clear_prefix(self._wing_key(wing))

    def toggle_wing_expanded(self, index: int) -> None:
        wing = self.draft.wings[index]
        wing.expanded = not wing.expanded

    # ---------------------------------------------------------------------
    # Gates
    # ---------------------------------------------------------------------
    def _gates(self, direction: str) -> List[DraftGate]:
        if direction not in GATE_DIRECTIONS:
            raise ValueError(f"Unknown gate direction: {direction!r}")
        return self.draft.gates(direction)

    def add_gate(self, direction: str) -> DraftGate:
        gate = DraftGate(id=new_id(direction))
        self._gates(direction).append(gate)
        self._clear_error(f"gates.{direction}.general")
        return gate

    def update_gate(self, direction: str, index: int, name: str) -> None:
        gate = self._gates(direction)[index]
        gate.name = sanitize_name(name, GATE_NAME_MAX_LENGTH)
        self._clear_error(f"gates.{direction}.{gate.id}.name")

    def remove_gate(self, direction: str, index: int) -> None:
        gate = self._gates(direction).pop(index)
        self._clear_prefix(f"gates.{direction}.{gate.id}")

    # ---------------------------------------------------------------------
    # Admins
    # ---------------------------------------------------------------------
    def add_admin(self) -> DraftAdmin:
        admin = DraftAdmin(id=new_id("admin"))
        self.draft.admins.append(admin)
        self._clear_error("admins.general")
        return admin

    def update_admin(self, index: int, field: str, value) -> None:
        if field not in ADMIN_FIELDS:
            raise ValueError(f"Unknown admin field: {field!r}")
        admin = self.draft.admins[index]
        value = "" if value is None else str(value)
        if field == "name":
            value = value[:ADMIN_NAME_MAX_LENGTH]
        elif field == "mobile":
            value = digits_only(value)[:ADMIN_MOBILE_MAX_LENGTH]
        elif field == "status":
            value = "Inactive" if value.strip().lower() == "inactive" else "Active"
        setattr(admin, field, value)
        self._clear_error(f"admins.{admin.id}.{field}")

    def remove_admin(self, index: int) -> None:
        admin = self.draft.admins.pop(index)
        self._clear_prefix(f"admins.{admin.id}")

    # ---------------------------------------------------------------------
    # Validation and navigation
    # ---------------------------------------------------------------------
    def validate(self, tab: str) -> bool:
        """Replace the tab's errors with a fresh set; True when valid."""
        tab_errors = validate_tab(self.draft, tab)
        self._clear_prefix(tab)
        self.errors.update(tab_errors)
        return not tab_errors

    def validate_all(self) -> Optional[str]:
        """Validate every tab; return the first invalid one (None when all pass)."""
        first_invalid = None
        for tab in TABS:
            if not self.validate(tab) and first_invalid is None:
                first_invalid = tab
        return first_invalid

    def tab_has_errors(self, tab: str) -> bool:
        return bool(self.errors_for(tab))

    def go_to(self, tab: str) -> bool:
        """Switch tab; moving forward requires the current tab to be valid."""
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab!r}")
        if TABS.index(tab) > TABS.index(self.active_tab) and not self.validate(self.active_tab):
            return False
        self.active_tab = tab
        return True

    def next(self) -> bool:
        position = TABS.index(self.active_tab)
        if position == len(TABS) - 1:
            return False
        return self.go_to(TABS[position + 1])

    def previous(self) -> bool:
        position = TABS.index(self.active_tab)
        if position == 0:
            return False
        self.active_tab = TABS[position - 1]
        return True

    @property
    def is_first_tab(self) -> bool:
        return self.active_tab == TABS[0]

    @property
    def is_last_tab(self) -> bool:
        return self.active_tab == TABS[-1]

    # ---------------------------------------------------------------------
    # Submit
    # ---------------------------------------------------------------------
    def submit(self) -> Optional[Society]:
        """
        Validate, assemble and save.

        Returns the saved record, or None when validation failed, the save
        failed, or a submit is already running. On failure the draft is kept.
        """
        with self.lock:
            if self.is_submitting or not self.mounted:
                return None
            self.is_submitting = True

        try:
            first_invalid = self.validate_all()
            if first_invalid is not None:
                self.active_tab = first_invalid
                return None

            record = assemble_record(
                self.draft,
                original=self.original,
                acting_user=self.acting_user,
                now=self.clock,
            )

            if self.is_edit_mode:
                saved = self.directory.update_society(self.society_id, record)
            else:
                saved = self.directory.create_society(record)
        except DirectoryError as exc:
            message = exc.message or SAVE_FAILED_MESSAGE
            logger.warning("Saving society %s failed: %s", record.id, message)
            if self.mounted:
                self.notifier.error(message)
            return None
        finally:
            self.is_submitting = False

        if not self.mounted:
            logger.debug("Discarding save result for %s: editor closed", saved.id)
            return None

        if self.cache is not None:
            self.cache.put(saved)
        logger.info("Society %s saved by %s", saved.id, self.acting_user)
        self.notifier.success(UPDATED_MESSAGE if self.is_edit_mode else CREATED_MESSAGE)
        self.saved = saved
        self.close()
        return saved

    # ---------------------------------------------------------------------
    # Geolocation
    # ---------------------------------------------------------------------
    def request_location(
        self,
        skip_if_filled: bool = False,
        provider: Optional[GeolocationProvider] = None,
    ) -> bool:
        """Fill latitude/longitude from a provider; True when coordinates were written."""
        fields = self.draft.fields
        if skip_if_filled and fields.latitude.strip() and fields.longitude.strip():
            self.auto_location_pending = False
            return False

        provider = provider or self.geolocation
        self.auto_location_pending = False
        if provider is None:
            self.location_error = NOT_SUPPORTED_MESSAGE
            return False

        self.location_error = None
        self.is_locating = True
        try:
            position = provider.get_current_position(
                timeout=REQUEST_TIMEOUT_SECONDS,
                maximum_age=MAXIMUM_AGE_SECONDS,
            )
        except GeolocationError as exc:
            if self.mounted:
                self.location_error = exc.message
            return False
        finally:
            self.is_locating = False

        if not self.mounted:
            return False

        fields.latitude = f"{position.latitude:.6f}"
        fields.longitude = f"{position.longitude:.6f}"
        self._clear_error("basic.latitude", "basic.longitude")
        return True

    # ---------------------------------------------------------------------
    # Read helpers for templates
    # ---------------------------------------------------------------------
    def tab_states(self) -> Iterable[Tuple[str, bool, bool]]:
        """(tab, is_active, has_errors) for the tab strip."""
        return [(tab, tab == self.active_tab, self.tab_has_errors(tab)) for tab in TABS]
