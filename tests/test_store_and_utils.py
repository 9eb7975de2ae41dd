from gatepal.editor import EditorStore, RecordCache
from gatepal.seed import seed_default_locations
from gatepal.utils import filter_societies, get_location_options, paginate, society_csv_row, sort_societies


# ---------------------------------------------------------------------
# EditorStore / RecordCache
# ---------------------------------------------------------------------
def test_store_checks_owner_and_discard_closes(editor_factory):
    store = EditorStore()
    editor = editor_factory(owner_id="1")
    token = store.open(editor)

    assert store.get(token, owner_id="1") is editor
    assert store.get(token, owner_id="2") is None

    store.discard(token)
    assert editor.mounted is False
    assert store.get(token, owner_id="1") is None


def test_store_evicts_oldest_editor(editor_factory):
    store = EditorStore(max_open=2)
    first, second, third = editor_factory(), editor_factory(), editor_factory()
    tokens = [store.open(first), store.open(second)]
    store.get(tokens[0])

    store.open(third)

    assert len(store) == 2
    assert second.mounted is False
    assert store.get(tokens[1]) is None
    assert store.get(tokens[0]) is first


def test_store_drops_editor_closed_elsewhere(new_editor):
    store = EditorStore()
    token = store.open(new_editor)
    new_editor.close()

    assert store.get(token) is None
    assert len(store) == 0


def test_record_cache_returns_copies(make_society):
    cache = RecordCache()
    cache.put(make_society())

    copy = cache.get("soc-1")
    copy.society_name = "Changed"

    assert cache.get("soc-1").society_name == "Green Meadows"

    cache.replace_all([make_society("soc-2")])
    assert cache.get("soc-1") is None
    cache.remove("soc-2")
    assert cache.get("soc-2") is None


# ---------------------------------------------------------------------
# Location seed
# ---------------------------------------------------------------------
def test_seed_locations_is_idempotent(app_ctx):
    added = seed_default_locations()

    assert added > 0
    assert seed_default_locations() == 0

    options = get_location_options()
    assert "Pune" in options["India"]
    assert options["United Arab Emirates"] == ["Abu Dhabi", "Dubai", "Sharjah"]


def test_seed_locations_cli(app):
    result = app.test_cli_runner().invoke(args=["seed-locations"])

    assert result.exit_code == 0
    assert "Default locations seeded" in result.output


# ---------------------------------------------------------------------
# List helpers
# ---------------------------------------------------------------------
def test_filter_and_sort(make_society):
    societies = [
        make_society("1", society_name="Green Meadows", status="Active"),
        make_society("2", society_name="blue ridge", society_pin="222222", status="Suspended"),
        make_society("3", society_name="Amber Court", society_pin="333333", address="Ring Road"),
    ]

    assert [s.id for s in filter_societies(societies, "ring")] == ["3"]
    assert [s.id for s in filter_societies(societies, "2222")] == ["2"]
    assert [s.id for s in filter_societies(societies, status="Suspended")] == ["2"]
    assert [s.id for s in sort_societies(societies, "name")] == ["3", "2", "1"]
    assert [s.id for s in sort_societies(societies, "pin", "desc")] == ["3", "2", "1"]


def test_paginate_clamps_page():
    page = paginate(list(range(25)), 9, 10)

    assert page.page == 3
    assert page.items == [20, 21, 22, 23, 24]
    assert page.pages == 3
    assert page.has_prev and not page.has_next

    empty = paginate([], 0, 10)
    assert empty.page == 1 and empty.pages == 1


def test_csv_row_blanks_missing_values(make_society):
    row = society_csv_row(make_society(latitude=None, notes=None))

    assert row[:3] == ["Green Meadows", "123456", "12 Park Road"]
    assert row[12] == ""
    assert row[14] == ""
