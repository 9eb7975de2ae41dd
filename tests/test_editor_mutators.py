import pytest

from gatepal.editor.draft import DraftWing


def test_base_rate_recomputes_gst_and_total(new_editor):
    new_editor.set_field("engagement", "base_rate", "1000")

    assert new_editor.draft.fields.gst == "180.00"
    assert new_editor.draft.fields.rate_incl_gst == "1180.00"


def test_base_rate_rounds_half_up(new_editor):
    new_editor.set_field("engagement", "base_rate", "99.99")

    assert new_editor.draft.fields.gst == "18.00"
    assert new_editor.draft.fields.rate_incl_gst == "117.99"


def test_non_numeric_base_rate_treated_as_zero(new_editor):
    new_editor.set_field("engagement", "base_rate", "abc")

    assert new_editor.draft.fields.base_rate == "abc"
    assert new_editor.draft.fields.gst == "0.00"
    assert new_editor.draft.fields.rate_incl_gst == "0.00"


@pytest.mark.parametrize("rate", ["1" + "0" * 29, "1e30", "10000000000"])
def test_out_of_range_base_rate_treated_as_zero(new_editor, rate):
    new_editor.set_field("engagement", "base_rate", rate)

    assert new_editor.draft.fields.base_rate == rate
    assert new_editor.draft.fields.gst == "0.00"
    assert new_editor.draft.fields.rate_incl_gst == "0.00"


def test_largest_base_rate_still_derives_totals(new_editor):
    new_editor.set_field("engagement", "base_rate", "9999999999.99")

    assert new_editor.draft.fields.gst == "1800000000.00"
    assert new_editor.draft.fields.rate_incl_gst == "11799999999.99"


def test_base_rate_change_clears_only_touched_keys(new_editor):
    new_editor.errors.update(
        {
            "engagement.base_rate": "Base rate is required.",
            "engagement.engagement_start_date": "Engagement start date is required.",
        }
    )

    new_editor.set_field("engagement", "base_rate", "500")

    assert "engagement.base_rate" not in new_editor.errors
    assert "engagement.engagement_start_date" in new_editor.errors


@pytest.mark.parametrize("field", ["society_pin"])
def test_read_only_basic_fields_rejected(new_editor, field):
    with pytest.raises(ValueError):
        new_editor.set_field("basic", field, "111111")
    assert new_editor.draft.fields.society_pin == "654321"


@pytest.mark.parametrize("field", ["gst", "rate_incl_gst"])
def test_read_only_engagement_fields_rejected(new_editor, field):
    with pytest.raises(ValueError):
        new_editor.set_field("engagement", field, "1.00")


def test_unknown_field_rejected(new_editor):
    with pytest.raises(ValueError):
        new_editor.set_field("basic", "base_rate", "100")


def test_country_change_resets_city(new_editor):
    new_editor.set_fields("basic", {"country": "India", "city": "Pune"})
    new_editor.errors["basic.city"] = "City is required."

    new_editor.set_field("basic", "country", "USA")

    assert new_editor.draft.fields.city == ""
    assert "basic.city" not in new_editor.errors


def test_set_fields_applies_country_before_city(new_editor):
    new_editor.set_fields("basic", {"city": "Dubai", "country": "UAE"})

    assert new_editor.draft.fields.country == "UAE"
    assert new_editor.draft.fields.city == "Dubai"


def test_unchanged_value_keeps_error(new_editor):
    new_editor.errors["basic.society_name"] = "Society name is required."

    new_editor.set_field("basic", "society_name", "")

    assert "basic.society_name" in new_editor.errors


def test_society_name_sanitized_and_clipped(new_editor):
    new_editor.set_field("basic", "society_name", "Sunrisé\tTowers" + "x" * 300)

    name = new_editor.draft.fields.society_name
    assert name.startswith("SunrisTowers")
    assert len(name) == 255


def test_vehicle_limits_keep_digits_only(new_editor):
    new_editor.set_field("basic", "two_wheelers_per_unit", "2a-1")

    assert new_editor.draft.fields.two_wheelers_per_unit == "21"


def test_add_wing_clears_general_error(new_editor):
    new_editor.errors["structure.general"] = "Add at least one wing."

    wing = new_editor.add_wing()

    assert wing.expanded is True
    assert wing.units == []
    assert "structure.general" not in new_editor.errors


def test_resize_generates_labels_and_shrink_purges_unit_errors(new_editor):
    new_editor.add_wing()
    new_editor.update_wing_name(0, "B")
    new_editor.resize_wing_units(0, "3")
    new_editor.resize_wing_units(0, "5")

    wing = new_editor.draft.wings[0]
    assert [u.number for u in wing.units] == ["B-1", "B-2", "B-3", "B-4", "B-5"]
    assert wing.total_units == 5

    key = f"structure.wings.{wing.id}.units"
    for unit in wing.units[1:]:
        new_editor.errors[f"{key}.{unit.id}"] = "Unit number is required."
    kept, dropped = wing.units[1], wing.units[2:]

    new_editor.resize_wing_units(0, "2")

    assert [u.number for u in wing.units] == ["B-1", "B-2"]
    assert wing.total_units == 2
    assert f"{key}.{kept.id}" in new_editor.errors
    for unit in dropped:
        assert f"{key}.{unit.id}" not in new_editor.errors


def test_resize_without_name_uses_unit_prefix(new_editor):
    new_editor.add_wing()
    new_editor.resize_wing_units(0, "2")

    assert [u.number for u in new_editor.draft.wings[0].units] == ["Unit-1", "Unit-2"]


def test_resize_caps_total_and_ignores_non_digits(new_editor):
    new_editor.add_wing()
    new_editor.resize_wing_units(0, "12x34")

    assert new_editor.draft.wings[0].total_units == 999
    assert len(new_editor.draft.wings[0].units) == 999

    new_editor.resize_wing_units(0, "abc")
    assert new_editor.draft.wings[0].total_units == 0
    assert new_editor.draft.wings[0].units == []


def test_resize_clears_total_units_error(new_editor):
    wing = new_editor.add_wing()
    new_editor.errors[f"structure.wings.{wing.id}.total_units"] = "Total units must be greater than 0."

    new_editor.resize_wing_units(0, "1")

    assert f"structure.wings.{wing.id}.total_units" not in new_editor.errors


def test_resize_to_positive_count_clears_general_error(new_editor):
    new_editor.add_wing()
    new_editor.errors["structure.general"] = "Add at least one wing."

    new_editor.resize_wing_units(0, "0")
    assert "structure.general" in new_editor.errors

    new_editor.resize_wing_units(0, "4")
    assert "structure.general" not in new_editor.errors


def test_remove_wing_cascades_errors(new_editor):
    new_editor.add_wing()
    new_editor.resize_wing_units(0, "1")
    wing = new_editor.draft.wings[0]
    unit = wing.units[0]
    new_editor.errors.update(
        {
            f"structure.wings.{wing.id}.name": "Wing name is required.",
            f"structure.wings.{wing.id}.units.{unit.id}": "Unit number is required.",
            "basic.city": "City is required.",
        }
    )

    new_editor.remove_wing(0)

    assert new_editor.draft.wings == []
    assert new_editor.errors == {"basic.city": "City is required."}


def test_remove_wing_does_not_touch_wing_with_longer_id(new_editor):
    new_editor.draft.wings = [DraftWing(id="a1", name=""), DraftWing(id="a10", name="")]
    new_editor.errors.update(
        {
            "structure.wings.a1.name": "Wing name is required.",
            "structure.wings.a10.name": "Wing name is required.",
        }
    )

    new_editor.remove_wing(0)

    assert list(new_editor.errors) == ["structure.wings.a10.name"]


def test_toggle_wing_expanded(new_editor):
    new_editor.add_wing()
    new_editor.toggle_wing_expanded(0)
    assert new_editor.draft.wings[0].expanded is False


def test_wing_index_out_of_range(new_editor):
    with pytest.raises(IndexError):
        new_editor.update_wing_name(3, "A")


def test_add_and_remove_gate(new_editor):
    new_editor.errors["gates.exit.general"] = "Add at least one exit gate."

    gate = new_editor.add_gate("exit")
    assert len(new_editor.draft.exit_gates) == 2
    assert "gates.exit.general" not in new_editor.errors

    new_editor.errors[f"gates.exit.{gate.id}.name"] = "Exit gate name is required."
    new_editor.remove_gate("exit", 1)
    assert len(new_editor.draft.exit_gates) == 1
    assert new_editor.errors == {}


def test_update_gate_sanitizes_name(new_editor):
    new_editor.update_gate("entry", 0, "Nörth Gate")

    assert new_editor.draft.entry_gates[0].name == "Nrth Gate"


def test_unknown_gate_direction_rejected(new_editor):
    with pytest.raises(ValueError):
        new_editor.add_gate("side")


def test_add_admin_clears_general_error(new_editor):
    new_editor.errors["admins.general"] = "Add at least one society admin."

    admin = new_editor.add_admin()

    assert admin.status == "Active"
    assert "admins.general" not in new_editor.errors


def test_update_admin_normalizes_values(new_editor):
    new_editor.add_admin()
    new_editor.update_admin(0, "mobile", "98-765 43210 99")
    new_editor.update_admin(0, "name", "N" * 150)
    new_editor.update_admin(0, "status", "inactive")

    admin = new_editor.draft.admins[0]
    assert admin.mobile == "9876543210"
    assert len(admin.name) == 100
    assert admin.status == "Inactive"


def test_update_admin_clears_own_error_only(new_editor):
    admin = new_editor.add_admin()
    new_editor.errors.update(
        {
            f"admins.{admin.id}.email": "Admin email is required.",
            f"admins.{admin.id}.mobile": "Phone number is required.",
        }
    )

    new_editor.update_admin(0, "email", "a@b.co")

    assert list(new_editor.errors) == [f"admins.{admin.id}.mobile"]


def test_update_admin_unknown_field(new_editor):
    new_editor.add_admin()
    with pytest.raises(ValueError):
        new_editor.update_admin(0, "role", "owner")


def test_remove_admin_cascades_errors(new_editor):
    admin = new_editor.add_admin()
    new_editor.errors[f"admins.{admin.id}.name"] = "Admin name is required."

    new_editor.remove_admin(0)

    assert new_editor.draft.admins == []
    assert new_editor.errors == {}
