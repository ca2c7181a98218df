import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Union

from smartform.core import Signal, batch_updates
from smartform.exceptions import InvalidTransitionError, UnknownFieldError
from smartform.form.schema import Schema

logger = logging.getLogger(__name__)


class FieldStatus(str, Enum):
    PRISTINE = "pristine"
    TOUCHED = "touched"


@dataclass(frozen=True)
class SetValue:
    name: str
    value: Any


@dataclass(frozen=True)
class SetError:
    name: str
    message: str


@dataclass(frozen=True)
class SetSubmitting:
    flag: bool


@dataclass(frozen=True)
class ResetErrors:
    pass


@dataclass(frozen=True)
class SetSubmissionError:
    message: Optional[str]


@dataclass(frozen=True)
class SetTouched:
    name: str
    status: FieldStatus = FieldStatus.TOUCHED


Action = Union[SetValue, SetError, SetSubmitting, ResetErrors, SetSubmissionError, SetTouched]

_ACTIONS = (SetValue, SetError, SetSubmitting, ResetErrors, SetSubmissionError, SetTouched)


@dataclass(frozen=True)
class FormSnapshot:
    """
    One immutable reading of a form's runtime state. ``values``, ``errors``
    and ``touched`` always carry exactly the schema's field names.
    """
    values: Dict[str, Any]
    errors: Dict[str, str]
    touched: Dict[str, FieldStatus]
    is_submitting: bool = False
    submission_error: Optional[str] = None

    @classmethod
    def initial(cls, schema: Schema) -> 'FormSnapshot':
        return cls(
            values={f.name: f.default_value for f in schema},
            errors={f.name: "" for f in schema},
            touched={f.name: FieldStatus.PRISTINE for f in schema},
        )


def _with_entry(mapping: Dict[str, Any], name: str, value: Any) -> Dict[str, Any]:
    if name not in mapping:
        raise UnknownFieldError(name)
    return {**mapping, name: value}


def reduce(snapshot: FormSnapshot, action: Action) -> FormSnapshot:
    """
    Applies one transition and returns the resulting snapshot. The input
    snapshot is never modified.
    """
    if isinstance(action, SetValue):
        return replace(snapshot, values=_with_entry(snapshot.values, action.name, action.value))
    if isinstance(action, SetError):
        return replace(snapshot, errors=_with_entry(snapshot.errors, action.name, action.message or ""))
    if isinstance(action, SetTouched):
        return replace(snapshot, touched=_with_entry(snapshot.touched, action.name, FieldStatus(action.status)))
    if isinstance(action, SetSubmitting):
        return replace(snapshot, is_submitting=bool(action.flag))
    if isinstance(action, ResetErrors):
        return replace(snapshot, errors={name: "" for name in snapshot.errors})
    if isinstance(action, SetSubmissionError):
        return replace(snapshot, submission_error=action.message or None)
    raise InvalidTransitionError(action)


class FormState:
    """
    The runtime model of one mounted form. Each part lives in its own signal
    so effects re-run only when what they read changes.
    """
    def __init__(self, snapshot: FormSnapshot):
        self._snapshot = snapshot
        self._closed = False
        self.values = Signal(snapshot.values)
        self.errors = Signal(snapshot.errors)
        self.touched = Signal(snapshot.touched)
        self.is_submitting = Signal(snapshot.is_submitting)
        self.submission_error = Signal(snapshot.submission_error)

    @property
    def snapshot(self) -> FormSnapshot:
        return self._snapshot

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def dispatch(self, action: Action) -> bool:
        """
        Reduces the action into the current state and publishes the result.
        Returns False when the store is closed and the action was dropped.
        """
        if not isinstance(action, _ACTIONS):
            raise InvalidTransitionError(action)
        if self._closed:
            logger.debug("Dropping %r; the form is unmounted", action)
            return False

        snapshot = reduce(self._snapshot, action)
        self._snapshot = snapshot
        logger.debug("Applied %r", action)

        def publish():
            self.values.set(snapshot.values)
            self.errors.set(snapshot.errors)
            self.touched.set(snapshot.touched)
            self.is_submitting.set(snapshot.is_submitting)
            self.submission_error.set(snapshot.submission_error)

        batch_updates(publish)
        return True
