import re

from gatepal.directory import DirectoryError
from gatepal.editor import Position, ReportedGeolocation
from gatepal.editor.draft import draft_from_record, generate_pin
from gatepal.records import Gate, Unit, Wing


def test_generated_pin_is_six_digits():
    for _ in range(50):
        pin = generate_pin()
        assert re.fullmatch(r"\d{6}", pin)
        assert 100000 <= int(pin) <= 999999


def test_create_mode_defaults(new_editor):
    draft = new_editor.draft

    assert new_editor.initialized
    assert draft.id is None
    assert draft.fields.society_pin == "654321"
    assert [g.name for g in draft.entry_gates] == [""]
    assert [g.name for g in draft.exit_gates] == [""]
    assert draft.wings == []
    assert draft.admins == []
    assert new_editor.active_tab == "basic"
    assert new_editor.errors == {}


def test_create_mode_submit_immediately_fails_on_basic_tab(new_editor, directory, notifier):
    assert new_editor.submit() is None

    assert new_editor.active_tab == "basic"
    assert "basic.society_name" in new_editor.errors
    assert "create" not in directory.calls
    assert notifier.successes == [] and notifier.errors == []


def test_create_mode_asks_browser_for_location_without_provider(new_editor):
    assert new_editor.auto_location_pending is True


def test_create_mode_prefills_location_from_provider(editor_factory):
    editor = editor_factory(geolocation=ReportedGeolocation(position=Position(18.5204303, 73.8567437)))
    editor.initialize()

    assert editor.draft.fields.latitude == "18.520430"
    assert editor.draft.fields.longitude == "73.856744"
    assert editor.auto_location_pending is False


def test_edit_mode_uses_cached_record_without_fetch(editor_factory, cache, directory, make_society):
    cache.put(make_society())
    editor = editor_factory("soc-1")
    editor.initialize()

    assert "get" not in directory.calls
    assert editor.draft.id == "soc-1"
    assert editor.draft.fields.society_name == "Green Meadows"
    assert editor.draft.fields.base_rate == "1000.00"
    assert [u.number for u in editor.draft.wings[0].units] == ["A-101", "A-102"]
    assert editor.draft.admins[0].email == "asha@example.com"


def test_edit_mode_draft_is_independent_of_cache(editor_factory, cache, make_society):
    cache.put(make_society())
    editor = editor_factory("soc-1")
    editor.initialize()

    editor.update_wing_name(0, "Tower Z")
    editor.update_gate("entry", 0, "Side Gate")

    cached = cache.get("soc-1")
    assert cached.wings[0].name == "A"
    assert cached.entry_gates[0].name == "Main Gate"


def test_edit_mode_fetches_when_not_cached(editor_factory, directory, cache, make_society):
    directory.societies["soc-1"] = make_society()
    editor = editor_factory("soc-1")
    editor.initialize()

    assert directory.calls == ["get"]
    assert editor.initialized
    assert editor.draft.fields.city == "Pune"
    assert editor.original.id == "soc-1"
    assert cache.get("soc-1") is not None


def test_edit_mode_not_found(editor_factory):
    editor = editor_factory("missing")
    editor.initialize()

    assert editor.not_found is True
    assert editor.redirect_reason == "Society not found."
    assert editor.initialized is False


def test_edit_mode_other_failure_keeps_server_message(editor_factory, directory):
    directory.fail_with = DirectoryError("Backend unavailable", 503)
    editor = editor_factory("soc-1")
    editor.initialize()

    assert editor.not_found is False
    assert editor.redirect_reason == "Backend unavailable"


def test_edit_mode_failure_without_message_uses_fallback(editor_factory, directory):
    directory.fail_with = DirectoryError("")
    editor = editor_factory("soc-1")
    editor.initialize()

    assert editor.redirect_reason == "Failed to load society."


def test_initialize_runs_once(editor_factory, directory, make_society):
    directory.societies["soc-1"] = make_society()
    editor = editor_factory("soc-1", cache=None)

    editor.initialize()
    editor.initialize()

    assert directory.calls.count("get") == 1


def test_fetch_result_dropped_after_close(editor_factory, directory, make_society):
    directory.societies["soc-1"] = make_society()
    editor = editor_factory("soc-1")
    directory.on_call = lambda name: editor.close()

    editor.initialize()

    assert editor.initialized is False
    assert editor.original is None
    assert editor.draft.fields.society_name == ""
    assert editor.redirect_reason is None


def test_draft_from_record_sanitizes_and_clips(make_society):
    record = make_society(
        society_name="Sunriseé Towers\n",
        wings=[
            Wing(
                id="w1",
                name="Tower☃ B",
                total_units=2,
                units=[Unit(id="u1", number="B-1"), Unit(id="u2", number="B-2"), Unit(id="u3", number="B-3")],
            ),
            Wing(id="w2", name="C", total_units=5, units=[Unit(id="u4", number="C-1")]),
        ],
        entry_gates=[],
        exit_gates=[Gate(id="x1", name="Exit " + "x" * 200)],
    )

    draft = draft_from_record(record)

    assert draft.fields.society_name == "Sunrise Towers"
    assert draft.wings[0].name == "Tower B"
    assert [u.id for u in draft.wings[0].units] == ["u1", "u2"]
    assert draft.wings[0].total_units == 2
    assert draft.wings[1].total_units == 1
    assert len(draft.entry_gates) == 1 and draft.entry_gates[0].name == ""
    assert len(draft.exit_gates[0].name) == 100
