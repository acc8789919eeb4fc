"""
Form field descriptors.

A descriptor is the static configuration of one form field. Each field type
has its own model carrying only the options that apply to it, and the
`FormFieldDescriptor` union is discriminated on `field_type`.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Callable, List, Literal, Optional, Union

from markupsafe import Markup
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import settings

DEFAULT_DATE_FORMAT = "MM/dd/yyyy"
DEFAULT_TIME_FORMAT = "h:mm aa"

# Pattern tokens are whole runs of letters, so "MMM" or "at" never match
PATTERN_TOKEN_RE = re.compile(r"[A-Za-z]+")
TIME_TOKENS = {"HH", "H", "hh", "h"}


class FormFieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    PHONE = "phone"
    CHECKBOX = "checkbox"
    DATE = "date"
    SELECT = "select"
    CUSTOM = "custom"


def _noop(*args: Any) -> None:
    return None


def has_time_tokens(pattern: str) -> bool:
    return any(token in TIME_TOKENS for token in PATTERN_TOKEN_RE.findall(pattern))


@dataclass
class FieldState:
    """
    Live state of one field for a single render pass.

    Owned by the form controller; renderers read `value` and write through
    `on_change` but never keep a reference to the state.
    """
    value: Any = None
    on_change: Callable[[Any], None] = field(default=_noop)
    on_blur: Callable[[], None] = field(default=_noop)


class BaseField(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Field name, unique within a form")
    label: Optional[str] = None
    placeholder: Optional[str] = None


class TextField(BaseField):
    field_type: Literal[FormFieldType.TEXT] = FormFieldType.TEXT
    icon_src: Optional[str] = None
    icon_alt: Optional[str] = None


class TextAreaField(BaseField):
    field_type: Literal[FormFieldType.TEXTAREA] = FormFieldType.TEXTAREA
    disabled: bool = False


class PhoneField(BaseField):
    field_type: Literal[FormFieldType.PHONE] = FormFieldType.PHONE
    default_country: str = Field(default_factory=lambda: settings.DEFAULT_PHONE_COUNTRY)


class CheckboxField(BaseField):
    """The label is rendered as the inline caption next to the box."""
    field_type: Literal[FormFieldType.CHECKBOX] = FormFieldType.CHECKBOX


class DateField(BaseField):
    field_type: Literal[FormFieldType.DATE] = FormFieldType.DATE
    date_format: Optional[str] = None
    include_time: bool = False

    @property
    def pattern(self) -> str:
        """Display pattern, with a time part appended when time is selectable
        and the format has none of its own."""
        pattern = self.date_format or DEFAULT_DATE_FORMAT
        if self.include_time and not has_time_tokens(pattern):
            pattern = f"{pattern} - {DEFAULT_TIME_FORMAT}"
        return pattern

    @property
    def input_patterns(self) -> List[str]:
        """Patterns accepted on input, display pattern first."""
        pattern = self.pattern
        date_part = self.date_format or DEFAULT_DATE_FORMAT
        if not self.include_time or has_time_tokens(date_part):
            return [pattern]
        return [pattern, f"{date_part} HH:mm", f"{date_part} - HH:mm", f"{date_part} h:mm aa"]


class SelectOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    content: str


class SelectField(BaseField):
    field_type: Literal[FormFieldType.SELECT] = FormFieldType.SELECT
    options: List[SelectOption] = Field(default_factory=list)


class CustomField(BaseField):
    """
    Caller-rendered field for widgets outside the fixed set (radio groups,
    file pickers). `render` receives the field state and returns markup;
    `parse` converts raw input before it reaches `on_change`.
    """
    field_type: Literal[FormFieldType.CUSTOM] = FormFieldType.CUSTOM
    render: Callable[[FieldState], Markup]
    parse: Optional[Callable[[Any], Any]] = None
    multiple: bool = False


FormFieldDescriptor = Annotated[
    Union[TextField, TextAreaField, PhoneField, CheckboxField, DateField, SelectField, CustomField],
    Field(discriminator="field_type"),
]
