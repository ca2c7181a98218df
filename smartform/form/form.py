import asyncio
import logging
from dataclasses import dataclass
from inspect import isawaitable
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from smartform.core import Effect, batch_updates, create_effect, create_memo
from smartform.exceptions import UnknownFieldError, global_error_handler
from smartform.form.pipeline import coerce_value, format_value, is_visible
from smartform.form.render import DEFAULT_RENDERERS, FieldRenderer, FormView, render_form
from smartform.form.schema import Field, FieldType, Schema
from smartform.form.state import (
    FieldStatus,
    FormSnapshot,
    FormState,
    ResetErrors,
    SetError,
    SetSubmissionError,
    SetSubmitting,
    SetTouched,
    SetValue,
)
from smartform.form.validator import validate
from smartform.utils.async_task import run_async

logger = logging.getLogger(__name__)

SubmitCallback = Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class FormOptions:
    hide_submit_button: bool = False
    disable_validation: bool = False
    submit_button_text: str = "Submit"
    show_error_summary: bool = True
    show_field_errors: bool = True


class FieldUsage:
    """
    A handle on one field of a form. Reads always reflect the current state.
    """
    def __init__(self, form: 'Form', field: Field):
        self._form = form
        self.field = field
        self.name = field.name

    @property
    def value(self) -> Any:
        return self._form.values[self.name]

    @property
    def error(self) -> str:
        return self._form.errors[self.name]

    @property
    def status(self) -> FieldStatus:
        return self._form.touched[self.name]

    @property
    def touched(self) -> bool:
        return self.status is FieldStatus.TOUCHED

    @property
    def dirty(self) -> bool:
        return self._form.dirty[self.name]

    @property
    def valid(self) -> bool:
        return not self.error

    @property
    def visible(self) -> bool:
        return is_visible(self.field, self._form.values)

    def set_value(self, value: Any) -> Optional[asyncio.Task]:
        return self._form.handle_change(self.name, value)

    def blur(self) -> None:
        self._form.handle_blur(self.name)

    def __repr__(self):
        return f"FieldUsage({self.name!r}, value={self.value!r}, error={self.error!r})"


class Form:
    """
    Manages form state, validation, and submission.
    """
    def __init__(self, schema: Schema, on_submit: Optional[SubmitCallback] = None,
                 options: Optional[FormOptions] = None,
                 renderers: Optional[Mapping[FieldType, FieldRenderer]] = None):
        self.schema = schema.freeze()
        self.field_names: Tuple[str, ...] = tuple(self.schema.names())
        self.options = options or FormOptions()
        self.on_submit = on_submit
        self.renderers: Dict[FieldType, FieldRenderer] = {**DEFAULT_RENDERERS, **(renderers or {})}

        self.initial_snapshot = FormSnapshot.initial(self.schema)
        self.state = FormState(self.initial_snapshot)

        # Latest dispatched validation per field; older results are stale.
        self._sequences: Dict[str, int] = {name: 0 for name in self.field_names}
        # Errors computed while their field is untouched and inline display is deferred.
        self._latent_errors: Dict[str, str] = {}
        self._pending: Set[asyncio.Task] = set()
        self._subscriptions: List[Effect] = []

        initial_values = self.initial_snapshot.values
        self._dirty = create_memo(lambda: {
            name: value != initial_values[name] for name, value in self.state.values().items()
        })
        self._has_errors = create_memo(lambda: any(self.state.errors().values()))

    def _field(self, name: str) -> Field:
        if name not in self._sequences:
            raise UnknownFieldError(name)
        return self.schema[name]

    # -- Read surface ---
    @property
    def values(self) -> Dict[str, Any]:
        return dict(self.state.values())

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self.state.errors())

    @property
    def touched(self) -> Dict[str, FieldStatus]:
        return dict(self.state.touched())

    @property
    def dirty(self) -> Dict[str, bool]:
        return dict(self._dirty())

    @property
    def is_submitting(self) -> bool:
        return self.state.is_submitting()

    @property
    def submission_error(self) -> Optional[str]:
        return self.state.submission_error()

    @property
    def pending(self) -> int:
        """Number of validations still running on the event loop."""
        return len(self._pending)

    def is_valid(self) -> bool:
        """True when no field carries an error, shown or deferred."""
        return not self._has_errors() and not any(self._latent_errors.values())

    def is_dirty(self) -> bool:
        return any(self._dirty().values())

    def field(self, name: str) -> FieldUsage:
        return FieldUsage(self, self._field(name))

    def view(self) -> FormView:
        return render_form(self, self.renderers)

    def subscribe(self, fn: Callable[['Form'], Any]) -> Effect:
        """
        Runs fn now and again whenever the state it reads changes.
        Dispose the returned effect to stop.
        """
        effect = create_effect(lambda: fn(self))
        self._subscriptions.append(effect)
        return effect
    # -- End Read surface ---

    def handle_change(self, field_name: str, raw_value: Any) -> Optional[asyncio.Task]:
        """
        Accepts a new input for a field. The value is stored whatever the
        validation outcome; validation sees the value before formatting.
        """
        field = self._field(field_name)
        value = coerce_value(field, raw_value)

        task = None
        if not self.options.disable_validation:
            self._sequences[field_name] += 1
            sequence = self._sequences[field_name]
            task = run_async(
                validate,
                args=(field, value),
                on_success=lambda message: self._commit_error(field_name, sequence, message),
                on_error=lambda e: global_error_handler(e, f"Validation of '{field_name}' failed"),
            )
            if task is not None:
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

        self.state.dispatch(SetValue(field_name, format_value(field, value)))
        return task

    def _commit_error(self, field_name: str, sequence: int, message: Optional[str]) -> None:
        if sequence != self._sequences[field_name]:
            logger.debug("Discarding stale validation #%s of '%s'", sequence, field_name)
            return
        if self.state.closed:
            logger.debug("Discarding validation of '%s'; the form is unmounted", field_name)
            return

        message = message or ""
        if self.options.show_field_errors or self.state.snapshot.touched[field_name] is FieldStatus.TOUCHED:
            self._latent_errors.pop(field_name, None)
            self.state.dispatch(SetError(field_name, message))
        else:
            self._latent_errors[field_name] = message

    def _touch(self, field_name: str) -> None:
        self.state.dispatch(SetTouched(field_name))
        if field_name in self._latent_errors:
            self.state.dispatch(SetError(field_name, self._latent_errors.pop(field_name)))

    def handle_blur(self, field_name: str) -> None:
        """Marks a field touched when inline errors wait for it."""
        self._field(field_name)
        if self.options.show_field_errors:
            return
        batch_updates(lambda: self._touch(field_name))

    def handle_submit(self) -> Optional[asyncio.Task]:
        """
        Starts a submission. Field errors do not block it; the callback gets
        the current values either way. A submit already in flight makes this
        a no-op.
        """
        if self.state.snapshot.is_submitting:
            logger.debug("Submit ignored; a submission is already in flight")
            return None
        if self.state.closed:
            logger.debug("Submit ignored; the form is unmounted")
            return None

        def perform_updates():
            # Touch first; a fault here must not leave the form marked as submitting.
            for name in self.field_names:
                self._touch(name)
            self.state.dispatch(SetSubmissionError(None))
            self.state.dispatch(SetSubmitting(True))

        batch_updates(perform_updates)
        return run_async(self._submit, args=(dict(self.state.snapshot.values),))

    async def _submit(self, values: Dict[str, Any]) -> None:
        try:
            if self.on_submit is not None:
                result = self.on_submit(values)
                if isawaitable(result):
                    await result
        except Exception as e:
            logger.warning("Form submission failed: %s", e)
            self.state.dispatch(SetSubmissionError(str(e) or type(e).__name__))
        finally:
            self.state.dispatch(SetSubmitting(False))

    def reset(self, clear_touched: bool = False) -> None:
        """
        Restores every value to its construction-time value and clears all
        errors. Validations still running are discarded. Touched flags and
        the submission error are kept unless clear_touched is set.
        """
        for name in self._sequences:
            self._sequences[name] += 1
        self._latent_errors.clear()

        def perform_updates():
            for name, value in self.initial_snapshot.values.items():
                self.state.dispatch(SetValue(name, value))
            self.state.dispatch(ResetErrors())
            if clear_touched:
                for name in self.field_names:
                    self.state.dispatch(SetTouched(name, FieldStatus.PRISTINE))
                self.state.dispatch(SetSubmissionError(None))

        batch_updates(perform_updates)

    def unmount(self) -> None:
        """
        Detaches the form. Validations and submissions that finish later are
        dropped.
        """
        self.state.close()
        for effect in self._subscriptions:
            effect.dispose()
        self._subscriptions.clear()
        self._dirty.dispose()
        self._has_errors.dispose()
        logger.debug("Form with fields %s unmounted", self.field_names)

    # -- Async conveniences ---
    async def change(self, field_name: str, raw_value: Any) -> None:
        """handle_change, then wait for that change's validation."""
        task = self.handle_change(field_name, raw_value)
        if task is not None:
            await task

    async def submit(self) -> None:
        task = self.handle_submit()
        if task is not None:
            await task

    async def settle(self) -> None:
        """Waits until no validation is running."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def create_form(schema: Union[Schema, Mapping[str, Any]], on_submit: Optional[SubmitCallback] = None,
                options: Optional[FormOptions] = None,
                renderers: Optional[Mapping[FieldType, FieldRenderer]] = None, **kwargs) -> Form:
    """
    Factory function to create and initialize a Form instance.

    Args:
        schema: A Schema, or a mapping of field name to field configuration.
        on_submit: Called with a snapshot of the values on submit. May be async.
        options: Form-level options. Keyword arguments build one when omitted.
        renderers: Per-type renderer overrides.

    Returns:
        A configured Form instance.
    """
    if not isinstance(schema, Schema):
        schema = Schema.from_dict(schema)
    if options is None:
        options = FormOptions(**kwargs)
    elif kwargs:
        raise TypeError(f"create_form got both options and keyword options: {sorted(kwargs)}")
    return Form(schema, on_submit=on_submit, options=options, renderers=renderers)
