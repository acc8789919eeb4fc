from datetime import datetime
from types import SimpleNamespace

import pytest
from markupsafe import Markup
from pydantic import ValidationError

from carepulse.forms.fields import (
    CheckboxField,
    CustomField,
    DateField,
    FieldState,
    FormFieldType,
    PhoneField,
    SelectField,
    SelectOption,
    TextAreaField,
    TextField,
)
from carepulse.forms.renderer import (
    UnrecognizedFieldTypeError,
    normalize_phone,
    render_field,
    to_strftime,
)


def recording_state(value=None):
    changes = []
    return FieldState(value=value, on_change=changes.append), changes


def rerender(descriptor, value):
    """Render with `value` as the current state and re-submit what is displayed."""
    state, changes = recording_state(value)
    control = render_field(descriptor, state)
    control.emit(control.display_value)
    return control, changes[-1]


class TestTextVariants:

    def test_text_emits_raw_string(self):
        """Text input passes the typed string through untouched."""
        state, changes = recording_state("Jo")
        control = render_field(TextField(name="name", icon_src="/static/icons/user.svg"), state)

        assert control.field_type == FormFieldType.TEXT
        assert 'type="text"' in control.html
        assert 'value="Jo"' in control.html
        assert "<img" in control.html

        control.emit("  Jane Doe ")
        assert changes == ["  Jane Doe "]

    def test_text_without_icon(self):
        state, _ = recording_state()
        control = render_field(TextField(name="occupation"), state)
        assert "<img" not in control.html
        assert 'value=""' in control.html

    def test_text_value_is_escaped(self):
        state, _ = recording_state('<script>alert("x")</script>')
        control = render_field(TextField(name="name"), state)
        assert "<script>" not in control.html
        assert "&lt;script&gt;" in control.html

    def test_textarea_renders_multiline_control(self):
        state, changes = recording_state("Peanuts")
        control = render_field(TextAreaField(name="allergies"), state)

        assert control.html.startswith("<textarea")
        assert ">Peanuts</textarea>" in control.html

        control.emit("Peanuts\nPollen")
        assert changes == ["Peanuts\nPollen"]

    def test_disabled_textarea_ignores_input(self):
        state, changes = recording_state("Locked")
        control = render_field(TextAreaField(name="reason", disabled=True), state)

        assert " disabled" in control.html
        control.emit("Changed")
        assert changes == []


class TestPhoneVariant:

    def test_national_number_normalized_with_default_country(self):
        """A bare national number picks up the default country's code."""
        state, changes = recording_state()
        control = render_field(PhoneField(name="phone", default_country="RU"), state)

        assert control.attrs["default_country"] == "RU"
        control.emit("5551234567")

        assert changes[0].startswith("+")
        assert changes[0] == "+75551234567"

    def test_default_country_comes_from_settings(self):
        assert PhoneField(name="phone").default_country == "RU"

    def test_empty_input_emits_none(self):
        state, changes = recording_state()
        control = render_field(PhoneField(name="phone"), state)
        control.emit("")
        control.emit(None)
        assert changes == [None, None]

    def test_partial_input_is_kept(self):
        assert normalize_phone("12", "RU") == "12"
        assert normalize_phone("not a phone", "RU") == "not a phone"

    def test_international_number_keeps_its_country(self):
        assert normalize_phone("+1 (868) 579-9831", "RU") == "+18685799831"


class TestDateVariant:

    def test_default_pattern_without_time(self):
        """No format and no prior value: MM/DD/YYYY pattern, time selection off."""
        state, _ = recording_state()
        control = render_field(DateField(name="birthDate"), state)

        assert control.attrs["date_format"] == "MM/dd/yyyy"
        assert control.attrs["time_select"] is False
        assert 'data-time-select="false"' in control.html
        assert control.display_value == ""

    def test_pattern_translation(self):
        assert to_strftime("MM/dd/yyyy") == "%m/%d/%Y"
        assert to_strftime("MM/DD/YYYY") == "%m/%d/%Y"
        assert to_strftime("MM/dd/yyyy - h:mm aa") == "%m/%d/%Y - %I:%M %p"

    def test_emits_datetime_or_none(self):
        state, changes = recording_state()
        control = render_field(DateField(name="birthDate"), state)

        control.emit("12/25/1990")
        control.emit("")
        control.emit("not a date")

        assert changes == [datetime(1990, 12, 25), None, None]

    def test_accepts_iso_dates(self):
        state, changes = recording_state()
        render_field(DateField(name="birthDate"), state).emit("1990-12-25")
        assert changes == [datetime(1990, 12, 25)]

    def test_include_time_adds_time_control(self):
        state, changes = recording_state()
        control = render_field(DateField(name="schedule", include_time=True), state)

        assert control.attrs["time_select"] is True
        assert control.attrs["date_format"] == "MM/dd/yyyy - h:mm aa"
        assert 'data-time-select="true"' in control.html

        control.emit("12/25/2030 - 10:30 AM")
        assert changes == [datetime(2030, 12, 25, 10, 30)]

    def test_include_time_with_date_only_format(self):
        """A date-only format still gets a time part when time is selectable."""
        field = DateField(name="schedule", date_format="MM/dd/yyyy", include_time=True)
        state, changes = recording_state(datetime(2030, 12, 25, 10, 30))
        control = render_field(field, state)

        assert control.attrs["date_format"] == "MM/dd/yyyy - h:mm aa"
        assert 'value="12/25/2030 - 10:30 AM"' in control.html

        control.emit("12/25/2030 - 10:30 AM")
        control.emit("12/25/2030 10:30")
        control.emit("12/25/2030 2:15 PM")
        assert changes == [
            datetime(2030, 12, 25, 10, 30),
            datetime(2030, 12, 25, 10, 30),
            datetime(2030, 12, 25, 14, 15),
        ]

    def test_format_with_own_time_part_is_kept(self):
        field = DateField(name="schedule", date_format="dd.MM.yyyy HH:mm", include_time=True)
        state, changes = recording_state(datetime(2030, 12, 25, 16, 5))
        control = render_field(field, state)

        assert control.display_value == "25.12.2030 16:05"
        control.emit(control.display_value)
        assert changes == [datetime(2030, 12, 25, 16, 5)]

    def test_letters_outside_tokens_stay_literal(self):
        assert to_strftime("dd MMM yyyy") == "%d MMM %Y"
        assert to_strftime("MM/dd/yyyy at h:mm aa") == "%m/%d/%Y at %I:%M %p"

    def test_custom_format(self):
        state, _ = recording_state(datetime(2024, 3, 9))
        control = render_field(DateField(name="day", date_format="dd.MM.yyyy"), state)
        assert control.display_value == "09.03.2024"


class TestSelectAndCheckbox:

    def test_select_emits_value_verbatim(self):
        field = SelectField(
            name="primaryPhysician",
            placeholder="Select a physician",
            options=[SelectOption(value="John Green", content="John Green"),
                     SelectOption(value="Leila Cameron", content="Leila Cameron")],
        )
        state, changes = recording_state()
        control = render_field(field, state)

        assert control.html.startswith("<select")
        assert "Select a physician" in control.html

        control.emit("Leila Cameron")
        control.emit("Someone Else")
        assert changes == ["Leila Cameron", "Someone Else"]

    def test_select_marks_current_value(self):
        field = SelectField(name="primaryPhysician",
                            options=[SelectOption(value="John Green", content="John Green")])
        state, _ = recording_state("John Green")
        control = render_field(field, state)
        assert '<option value="John Green" selected>' in control.html

    def test_checkbox_emits_boolean(self):
        state, changes = recording_state()
        control = render_field(CheckboxField(name="privacyConsent", label="I agree"), state)

        assert 'type="checkbox"' in control.html
        assert 'class="checkbox-label">I agree</label>' in control.html

        control.emit("on")
        control.emit(None)
        control.emit(True)
        assert changes == [True, False, True]

    def test_checked_state_rendered(self):
        state, _ = recording_state(True)
        control = render_field(CheckboxField(name="privacyConsent", label="I agree"), state)
        assert " checked" in control.html


class TestCustomVariant:

    def test_custom_delegates_to_renderer(self):
        seen = []

        def render(state):
            seen.append(state.value)
            return Markup("<div class='radio-group'>{}</div>").format(state.value)

        state, changes = recording_state("Female")
        control = render_field(CustomField(name="gender", render=render), state)

        assert seen == ["Female"]
        assert control.html == "<div class='radio-group'>Female</div>"

        control.emit("Other")
        assert changes == ["Other"]

    def test_custom_parse_applied(self):
        field = CustomField(name="files", render=lambda state: Markup(""), parse=lambda raw: raw or [])
        state, changes = recording_state()
        render_field(field, state).emit(None)
        assert changes == [[]]

    def test_custom_without_renderer_is_a_configuration_error(self):
        with pytest.raises(ValidationError):
            CustomField(name="gender")

    def test_unrecognized_type_fails_loudly(self):
        descriptor = SimpleNamespace(field_type="slider", name="volume")
        with pytest.raises(UnrecognizedFieldTypeError):
            render_field(descriptor, FieldState())


class TestRoundTrip:

    @pytest.mark.parametrize("descriptor, raw", [
        (TextField(name="name"), "John Doe"),
        (TextAreaField(name="note"), "Prefer afternoons"),
        (PhoneField(name="phone"), "5551234567"),
        (PhoneField(name="phone"), "555"),
        (DateField(name="birthDate"), "01/15/1990"),
        (DateField(name="schedule", include_time=True), "12/25/2030 - 03:45 PM"),
        (SelectField(name="identificationType", options=[SelectOption(value="Passport", content="Passport")]),
         "Passport"),
        (CheckboxField(name="treatmentConsent", label="I consent"), "on"),
    ])
    def test_emitted_value_survives_rerender(self, descriptor, raw):
        """Feeding an emitted value back as state re-displays and re-emits it unchanged."""
        state, changes = recording_state()
        render_field(descriptor, state).emit(raw)
        value = changes[0]

        first, again = rerender(descriptor, value)
        second, _ = rerender(descriptor, again)

        assert again == value
        assert first.html == second.html

    def test_descriptor_is_not_mutated(self):
        descriptor = DateField(name="birthDate")
        before = descriptor.model_dump()
        state, _ = recording_state()
        render_field(descriptor, state).emit("01/15/1990")
        assert descriptor.model_dump() == before

        with pytest.raises(ValidationError):
            descriptor.date_format = "yyyy"
