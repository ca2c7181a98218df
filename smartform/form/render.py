from abc import ABC, abstractmethod
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from smartform.exceptions import SchemaError
from smartform.form.pipeline import is_visible
from smartform.form.schema import Field, FieldType

LOADING_TEXT = "Loading..."


@dataclass(frozen=True)
class SubmitButtonView:
    text: str
    disabled: bool


@dataclass
class FieldView:
    """Everything a widget layer needs to draw one field."""
    name: str
    type: FieldType
    input_type: str
    value: Any
    error: str
    show_error: bool
    label: str
    placeholder: str
    required: bool
    attrs: Dict[str, str]
    hints: Dict[str, Any]
    on_change: Callable[[Any], Any]
    on_blur: Callable[[], Any]
    options: Tuple[Any, ...] = ()
    checked: Optional[bool] = None
    rows: Optional[int] = None
    cols: Optional[int] = None


@dataclass
class FormView:
    fields: List[FieldView] = dataclass_field(default_factory=list)
    error_summary: List[str] = dataclass_field(default_factory=list)
    submission_error: Optional[str] = None
    submit_button: Optional[SubmitButtonView] = None
    is_submitting: bool = False

    def field(self, name: str) -> Optional[FieldView]:
        for view in self.fields:
            if view.name == name:
                return view
        return None

    def names(self) -> List[str]:
        return [view.name for view in self.fields]


@dataclass(frozen=True)
class RenderContext:
    """The runtime state a renderer reads for one field."""
    value: Any
    error: str
    on_change: Callable[[Any], Any]
    on_blur: Callable[[], Any]


class FieldRenderer(ABC):
    """
    Turns a field and its current state into a FieldView.
    """

    @abstractmethod
    def render(self, field: Field, ctx: RenderContext) -> FieldView:
        pass

    def base_view(self, field: Field, ctx: RenderContext, input_type: str, **overrides: Any) -> FieldView:
        error = ctx.error or ""
        attrs = {
            "id": field.name,
            "name": field.name,
            "aria-invalid": "true" if error else "false",
            "aria-required": "true" if field.is_required else "false",
        }
        if error:
            attrs["aria-describedby"] = f"{field.name}-error"

        view = dict(
            name=field.name,
            type=field.type,
            input_type=input_type,
            value=ctx.value,
            error=error,
            show_error=bool(error),
            label=field.label,
            placeholder=field.placeholder,
            required=field.is_required,
            attrs=attrs,
            hints=dict(field.hints),
            on_change=ctx.on_change,
            on_blur=ctx.on_blur,
        )
        view.update(overrides)
        return FieldView(**view)


class InputRenderer(FieldRenderer):
    """Single-line inputs. Custom and untyped fields render as text."""

    def render(self, field: Field, ctx: RenderContext) -> FieldView:
        input_type = field.type.value
        if field.type in (FieldType.CUSTOM, FieldType.DEFAULT):
            input_type = FieldType.TEXT.value
        value = "" if ctx.value is None else ctx.value
        return self.base_view(field, ctx, input_type, value=value)


class CheckboxRenderer(FieldRenderer):
    def render(self, field: Field, ctx: RenderContext) -> FieldView:
        checked = bool(ctx.value)
        return self.base_view(field, ctx, "checkbox", value=checked, checked=checked)


class ChoiceRenderer(FieldRenderer):
    """Radio groups and selects; both need a list of options."""

    def render(self, field: Field, ctx: RenderContext) -> FieldView:
        if not field.options:
            raise SchemaError(f"Field '{field.name}' of type '{field.type.value}' requires options")
        value = "" if ctx.value is None else ctx.value
        return self.base_view(field, ctx, field.type.value, value=value, options=tuple(field.options))


class TextareaRenderer(FieldRenderer):
    def render(self, field: Field, ctx: RenderContext) -> FieldView:
        value = "" if ctx.value is None else ctx.value
        return self.base_view(field, ctx, "textarea", value=value, rows=field.rows, cols=field.cols)


class FileRenderer(FieldRenderer):
    """File pickers never echo their selection back."""

    def render(self, field: Field, ctx: RenderContext) -> FieldView:
        return self.base_view(field, ctx, "file", value=None)


_INPUT = InputRenderer()
_CHOICE = ChoiceRenderer()

DEFAULT_RENDERERS: Dict[FieldType, FieldRenderer] = {
    FieldType.TEXT: _INPUT,
    FieldType.EMAIL: _INPUT,
    FieldType.PASSWORD: _INPUT,
    FieldType.NUMBER: _INPUT,
    FieldType.DATE: _INPUT,
    FieldType.TIME: _INPUT,
    FieldType.CUSTOM: _INPUT,
    FieldType.DEFAULT: _INPUT,
    FieldType.CHECKBOX: CheckboxRenderer(),
    FieldType.RADIO: _CHOICE,
    FieldType.SELECT: _CHOICE,
    FieldType.TEXTAREA: TextareaRenderer(),
    FieldType.FILE: FileRenderer(),
}


def render_form(form, renderers: Mapping[FieldType, FieldRenderer]) -> FormView:
    """
    Builds the view of a form from its current state. Reads go through the
    form's signals, so an effect calling this re-runs on every state change.
    """
    state = form.state
    values = state.values()
    errors = state.errors()
    submission_error = state.submission_error()
    is_submitting = state.is_submitting()
    options = form.options

    views = []
    for name in form.field_names:
        field = form.schema[name]
        if not is_visible(field, values):
            continue
        ctx = RenderContext(
            value=values[field.name],
            error=errors[field.name],
            on_change=lambda raw, name=field.name: form.handle_change(name, raw),
            on_blur=lambda name=field.name: form.handle_blur(name),
        )
        views.append(renderers[field.type].render(field, ctx))

    summary = []
    if options.show_error_summary:
        if submission_error:
            summary.append(submission_error)
        summary.extend(view.error for view in views if view.error)

    submit_button = None
    if not options.hide_submit_button:
        submit_button = SubmitButtonView(
            text=LOADING_TEXT if is_submitting else (options.submit_button_text or "Submit"),
            disabled=is_submitting,
        )

    return FormView(
        fields=views,
        error_summary=summary,
        submission_error=submission_error,
        submit_button=submit_button,
        is_submitting=is_submitting,
    )
