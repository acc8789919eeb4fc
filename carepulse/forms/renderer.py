"""
Field renderer.

Turns a field descriptor plus its live state into exactly one HTML control.
Every control comes with an `emit` binding: raw user input goes in, the
variant's value type comes out through `FieldState.on_change`. Nothing
here validates; that is the form controller's job.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Sequence, Union

import phonenumbers
from markupsafe import Markup

from .fields import (
    PATTERN_TOKEN_RE,
    CheckboxField,
    CustomField,
    DateField,
    FieldState,
    FormFieldType,
    PhoneField,
    SelectField,
    TextAreaField,
    TextField,
)

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"on", "true", "1", "yes", "y", "checked"}

# date-fns style tokens used by field descriptors; other letter runs are literal
_DATE_TOKENS = {
    "yyyy": "%Y",
    "YYYY": "%Y",
    "yy": "%y",
    "MM": "%m",
    "dd": "%d",
    "DD": "%d",
    "HH": "%H",
    "H": "%H",
    "hh": "%I",
    "h": "%I",
    "mm": "%M",
    "aa": "%p",
    "a": "%p",
}


class FieldRenderError(Exception):
    """Base class for field rendering failures."""


class UnrecognizedFieldTypeError(FieldRenderError):
    """Raised when a descriptor's field type has no renderer."""


class FieldConfigurationError(FieldRenderError):
    """Raised when a descriptor is missing configuration its type requires."""


@dataclass
class RenderedControl:
    field_type: FormFieldType
    name: str
    html: Markup
    display_value: Any
    emit: Callable[[Any], None]
    attrs: Dict[str, Any] = field(default_factory=dict)

    def __html__(self) -> str:
        return self.html


def to_strftime(pattern: str) -> str:
    """Translate a `MM/dd/yyyy` style pattern into a strftime format."""
    pieces = []
    last = 0
    for match in PATTERN_TOKEN_RE.finditer(pattern):
        token = match.group(0)
        if token not in _DATE_TOKENS:
            continue
        pieces.append(pattern[last:match.start()].replace("%", "%%"))
        pieces.append(_DATE_TOKENS[token])
        last = match.end()
    pieces.append(pattern[last:].replace("%", "%%"))
    return "".join(pieces)


def html_attrs(**attrs: Any) -> Markup:
    """Render keyword arguments as escaped HTML attributes.

    None and False are dropped, True renders a bare attribute and trailing
    underscores are stripped so `class_` can be used.
    """
    parts = []
    for key, value in attrs.items():
        if value is None or value is False:
            continue
        key = key.rstrip("_").replace("_", "-")
        if value is True:
            parts.append(Markup(" {}").format(key))
        else:
            parts.append(Markup(' {}="{}"').format(key, value))
    return Markup("").join(parts)


def normalize_phone(raw: Any, default_country: str) -> Optional[str]:
    """Return an E.164 phone number, None when empty, or the input unchanged
    when it cannot be parsed."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        number = phonenumbers.parse(text, default_country)
    except phonenumbers.NumberParseException:
        return text
    if not phonenumbers.is_possible_number(number):
        # Partial input; the form's validation decides what to do with it
        return text
    return phonenumbers.format_number(number, phonenumbers.PhoneNumberFormat.E164)


def parse_date(raw: Any, patterns: Union[str, Sequence[str]]) -> Optional[datetime]:
    """Parse input against each pattern in turn, then as ISO 8601."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, datetime.min.time())
    text = str(raw).strip()
    if not text:
        return None
    if isinstance(patterns, str):
        patterns = [patterns]
    for pattern in patterns:
        try:
            return datetime.strptime(text, to_strftime(pattern))
        except ValueError:
            continue
    # Native browser date inputs and JSON clients send ISO dates
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable date input {text!r} for patterns {list(patterns)!r}")
        return None


def parse_checkbox(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return False
    return str(raw).strip().lower() in _TRUE_VALUES


class FieldRenderer:
    """Renders one control per descriptor, dispatching on `field_type`."""

    def __init__(self):
        self._renderers = {
            FormFieldType.TEXT: self._render_text,
            FormFieldType.TEXTAREA: self._render_textarea,
            FormFieldType.PHONE: self._render_phone,
            FormFieldType.CHECKBOX: self._render_checkbox,
            FormFieldType.DATE: self._render_date,
            FormFieldType.SELECT: self._render_select,
            FormFieldType.CUSTOM: self._render_custom,
        }

    def render(self, descriptor, state: FieldState) -> RenderedControl:
        field_type = getattr(descriptor, "field_type", None)
        render = self._renderers.get(field_type)
        if render is None:
            name = getattr(descriptor, "name", "<unnamed>")
            logger.error(f"No renderer for field {name!r} of type {field_type!r}")
            raise UnrecognizedFieldTypeError(
                f"Unrecognized field type {field_type!r} for field {name!r}"
            )
        return render(descriptor, state)

    def _render_text(self, descriptor: TextField, state: FieldState) -> RenderedControl:
        value = "" if state.value is None else str(state.value)
        icon = Markup("")
        if descriptor.icon_src:
            icon = Markup("<img{}>").format(html_attrs(
                src=descriptor.icon_src,
                alt=descriptor.icon_alt or "icon",
                height=24,
                width=24,
                class_="ml-2",
            ))
        html = Markup('<div class="field-input">{}<input{}></div>').format(icon, html_attrs(
            type="text",
            id=descriptor.name,
            name=descriptor.name,
            value=value,
            placeholder=descriptor.placeholder,
            class_="shad-input",
        ))

        def emit(raw: Any) -> None:
            state.on_change("" if raw is None else str(raw))

        return RenderedControl(descriptor.field_type, descriptor.name, html, value, emit,
                               {"icon": descriptor.icon_src})

    def _render_textarea(self, descriptor: TextAreaField, state: FieldState) -> RenderedControl:
        value = "" if state.value is None else str(state.value)
        html = Markup("<textarea{}>{}</textarea>").format(html_attrs(
            id=descriptor.name,
            name=descriptor.name,
            placeholder=descriptor.placeholder,
            disabled=descriptor.disabled,
            class_="shad-textArea",
        ), value)

        def emit(raw: Any) -> None:
            if descriptor.disabled:
                return
            state.on_change("" if raw is None else str(raw))

        return RenderedControl(descriptor.field_type, descriptor.name, html, value, emit,
                               {"disabled": descriptor.disabled})

    def _render_phone(self, descriptor: PhoneField, state: FieldState) -> RenderedControl:
        value = "" if state.value is None else str(state.value)
        html = Markup('<div class="input-phone">{}</div>').format(Markup("<input{}>").format(html_attrs(
            type="tel",
            id=descriptor.name,
            name=descriptor.name,
            value=value,
            placeholder=descriptor.placeholder,
            data_default_country=descriptor.default_country,
            autocomplete="tel",
        )))

        def emit(raw: Any) -> None:
            state.on_change(normalize_phone(raw, descriptor.default_country))

        return RenderedControl(descriptor.field_type, descriptor.name, html, value, emit,
                               {"default_country": descriptor.default_country})

    def _render_date(self, descriptor: DateField, state: FieldState) -> RenderedControl:
        pattern = descriptor.pattern
        input_patterns = descriptor.input_patterns
        selected = parse_date(state.value, input_patterns)
        value = selected.strftime(to_strftime(pattern)) if selected else ""
        html = Markup('<div class="date-picker"><img{}><input{}></div>').format(
            html_attrs(src="/static/icons/calendar.svg", alt="calendar", height=24, width=24, class_="ml-2"),
            html_attrs(
                type="text",
                id=descriptor.name,
                name=descriptor.name,
                value=value,
                placeholder=descriptor.placeholder or pattern,
                data_date_format=pattern,
                data_time_select="true" if descriptor.include_time else "false",
                class_="date-picker-input",
            ),
        )

        def emit(raw: Any) -> None:
            state.on_change(parse_date(raw, input_patterns))

        return RenderedControl(descriptor.field_type, descriptor.name, html, value, emit,
                               {"date_format": pattern, "time_select": descriptor.include_time})

    def _render_select(self, descriptor: SelectField, state: FieldState) -> RenderedControl:
        value = "" if state.value is None else str(state.value)
        placeholder = Markup("")
        if descriptor.placeholder:
            placeholder = Markup('<option value="" disabled{}>{}</option>').format(
                Markup("" if value else " selected"), descriptor.placeholder
            )
        options = Markup("").join(
            Markup("<option{}>{}</option>").format(
                html_attrs(value=option.value, selected=option.value == value),
                option.content,
            )
            for option in descriptor.options
        )
        html = Markup("<select{}>{}{}</select>").format(
            html_attrs(id=descriptor.name, name=descriptor.name, class_="shad-select-trigger"),
            placeholder,
            options,
        )

        def emit(raw: Any) -> None:
            state.on_change(raw)

        return RenderedControl(descriptor.field_type, descriptor.name, html, state.value, emit)

    def _render_checkbox(self, descriptor: CheckboxField, state: FieldState) -> RenderedControl:
        checked = parse_checkbox(state.value)
        html = Markup('<div class="checkbox"><input{}><label{}>{}</label></div>').format(
            html_attrs(
                type="checkbox",
                id=descriptor.name,
                name=descriptor.name,
                checked=checked,
                class_="checkbox-button",
            ),
            html_attrs(for_=descriptor.name, class_="checkbox-label"),
            descriptor.label or "",
        )

        def emit(raw: Any) -> None:
            state.on_change(parse_checkbox(raw))

        return RenderedControl(descriptor.field_type, descriptor.name, html, checked, emit)

    def _render_custom(self, descriptor: CustomField, state: FieldState) -> RenderedControl:
        if descriptor.render is None:
            raise FieldConfigurationError(f"Custom field {descriptor.name!r} has no renderer")
        html = descriptor.render(state)
        html = Markup("") if html is None else Markup(html)

        def emit(raw: Any) -> None:
            state.on_change(descriptor.parse(raw) if descriptor.parse else raw)

        return RenderedControl(descriptor.field_type, descriptor.name, html, state.value, emit,
                               {"multiple": descriptor.multiple})


field_renderer = FieldRenderer()


def render_field(descriptor, state: FieldState) -> RenderedControl:
    return field_renderer.render(descriptor, state)
