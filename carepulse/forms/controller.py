"""
Form controller.

Owns the values, validation errors and submission lifecycle of one mounted
form. Fields are validated together against a pydantic schema whose aliases
match the field names, and each field is rendered inside a shared wrapper
that carries the label and the validation message.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Generic, Mapping, Optional, Sequence, Set, Type, TypeVar

from markupsafe import Markup
from pydantic import BaseModel, ValidationError

from .fields import CustomField, FieldState, FormFieldType
from .renderer import FieldConfigurationError, FieldRenderer, RenderedControl, field_renderer, html_attrs

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)
ResultT = TypeVar("ResultT")


def error_messages(exc: ValidationError) -> Dict[str, str]:
    """Map a pydantic ValidationError to the first message per field."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("__root__",)
        field_name = str(loc[0])
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field_name, message)
    return errors


class FormController(Generic[SchemaT]):
    def __init__(
        self,
        schema: Type[SchemaT],
        fields: Sequence[Any],
        defaults: Optional[Mapping[str, Any]] = None,
        renderer: FieldRenderer = field_renderer,
    ):
        names = [descriptor.name for descriptor in fields]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise FieldConfigurationError(f"Duplicate field names: {sorted(duplicates)}")

        self.schema = schema
        self.fields: Dict[str, Any] = {descriptor.name: descriptor for descriptor in fields}
        self.renderer = renderer
        self.values: Dict[str, Any] = {name: None for name in names}
        if defaults:
            self.values.update(defaults)
        self.errors: Dict[str, str] = {}
        self.touched: Set[str] = set()
        self.is_submitting = False
        self.submit_count = 0

    def field_state(self, name: str) -> FieldState:
        """Build the state handed to a renderer for one pass."""
        if name not in self.fields:
            raise KeyError(f"Unknown field {name!r}")
        return FieldState(
            value=self.values.get(name),
            on_change=lambda value: self.set_value(name, value),
            on_blur=lambda: self.touched.add(name),
        )

    def set_value(self, name: str, value: Any) -> None:
        self.values[name] = value
        self.errors.pop(name, None)

    def render_control(self, name: str) -> RenderedControl:
        return self.renderer.render(self.fields[name], self.field_state(name))

    def render_field(self, name: str) -> Markup:
        """Render one field inside the shared wrapper.

        Checkbox fields show their label inline, so the wrapper label is
        skipped for them.
        """
        descriptor = self.fields[name]
        control = self.render_control(name)

        label = Markup("")
        if descriptor.field_type != FormFieldType.CHECKBOX and descriptor.label:
            label = Markup("<label{}>{}</label>").format(
                html_attrs(for_=name, class_="shad-input-label"), descriptor.label
            )

        message = Markup("")
        if name in self.errors:
            message = Markup('<p class="shad-error">{}</p>').format(self.errors[name])

        return Markup('<div class="form-item" data-field="{}">{}{}{}</div>').format(
            name, label, control, message
        )

    def render(self, names: Optional[Sequence[str]] = None) -> Markup:
        return Markup("\n").join(self.render_field(name) for name in (names or self.fields))

    def ingest(self, raw: Mapping[str, Any]) -> None:
        """Feed submitted input through each control's binding, in field order."""
        for name, descriptor in self.fields.items():
            if isinstance(descriptor, CustomField) and descriptor.multiple and hasattr(raw, "getlist"):
                value = raw.getlist(name)
            else:
                value = raw.get(name)
            self.render_control(name).emit(value)
            self.touched.add(name)

    def validate(self) -> Optional[SchemaT]:
        try:
            validated = self.schema.model_validate(self.values)
        except ValidationError as e:
            self.errors = error_messages(e)
            logger.info(f"{self.schema.__name__} failed validation on {sorted(self.errors)}")
            return None
        self.errors = {}
        return validated

    async def handle_submit(
        self,
        on_submit: Callable[[SchemaT], Awaitable[ResultT]],
    ) -> Optional[ResultT]:
        """Validate, then hand the validated values to `on_submit`.

        Returns None without calling `on_submit` when validation fails.
        """
        self.submit_count += 1
        validated = self.validate()
        if validated is None:
            return None

        self.is_submitting = True
        try:
            return await on_submit(validated)
        finally:
            self.is_submitting = False
