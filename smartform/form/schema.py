import logging
import re
from enum import Enum
from typing import Dict, Any, Callable, Optional, List, Union, Iterator, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field as ModelField, ValidationError

from smartform.exceptions import SchemaError

logger = logging.getLogger(__name__)

_UNSET = object() # Sentinel object to differentiate unset initial value from None initial value


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PASSWORD = "password"
    NUMBER = "number"
    DATE = "date"
    TIME = "time"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"
    TEXTAREA = "textarea"
    FILE = "file"
    CUSTOM = "custom"
    DEFAULT = "default"


CHOICE_TYPES = (FieldType.RADIO, FieldType.SELECT)


class ValidationPolicy(str, Enum):
    """How declarative rules and a custom validator combine on one field."""
    RULES_XOR_CUSTOM = "rules-xor-custom"
    RULES_THEN_CUSTOM = "rules-then-custom"


class ValidationRules(BaseModel):
    """Declarative validation rules for a single field."""

    required: bool = ModelField(default=False, description="Reject empty values")
    min_length: Optional[int] = ModelField(default=None, alias="minLength")
    max_length: Optional[int] = ModelField(default=None, alias="maxLength")
    min: Optional[float] = ModelField(default=None, description="Minimum numeric value")
    max: Optional[float] = ModelField(default=None, description="Maximum numeric value")
    regex: Optional[re.Pattern] = ModelField(default=None)
    regex_error: Optional[str] = ModelField(default=None, alias="rgxError")
    email: bool = ModelField(default=False, description="Require an '@' in the value")
    pattern: Optional[re.Pattern] = ModelField(default=None)
    pattern_error: Optional[str] = ModelField(default=None, alias="patternError")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")


class FieldConfig(BaseModel):
    """
    One entry of a mapping-style schema, e.g.
    ``{"value": "", "type": "select", "options": ["a", "b"]}``.

    Keys outside the recognised set are kept as presentation hints.
    """

    value: Any = ModelField(default=None)
    type: FieldType = ModelField(default=FieldType.DEFAULT)
    validation: Optional[ValidationRules] = ModelField(default=None)
    custom_validation: Optional[Callable[[Any], Any]] = ModelField(default=None, alias="customValidation")
    format: Optional[Callable[[Any], Any]] = ModelField(default=None)
    show_when: Optional[Callable[[Mapping[str, Any]], Any]] = ModelField(default=None, alias="showWhen")
    options: Optional[List[Any]] = ModelField(default=None)
    label: Optional[str] = ModelField(default=None)
    placeholder: Optional[str] = ModelField(default=None)
    rows: Optional[int] = ModelField(default=None)
    cols: Optional[int] = ModelField(default=None)
    policy: ValidationPolicy = ModelField(default=ValidationPolicy.RULES_XOR_CUSTOM)

    model_config = ConfigDict(populate_by_name=True, extra="allow", arbitrary_types_allowed=True)


class Field:
    """
    Represents a single field in a form schema.

    Built fluently, then frozen once a form is created from the schema.
    """
    def __init__(self, name: str):
        self.name = name
        self.type: FieldType = FieldType.DEFAULT
        self.initial_value: Any = _UNSET
        self.rules: Optional[ValidationRules] = None
        self.custom_validator: Optional[Callable[[Any], Any]] = None
        self.formatter: Optional[Callable[[Any], Any]] = None
        self.visible_when: Optional[Callable[[Mapping[str, Any]], Any]] = None
        self.options: Optional[Tuple[Any, ...]] = None
        self.policy: ValidationPolicy = ValidationPolicy.RULES_XOR_CUSTOM
        self.label: str = name
        self.placeholder: str = name.upper()
        self.rows: int = 4
        self.cols: int = 50
        self.hints: Dict[str, Any] = {}
        self._frozen = False

    def __repr__(self):
        return f"Field({self.name!r}, type={self.type.value!r})"

    def __setattr__(self, key, value):
        if getattr(self, "_frozen", False):
            raise SchemaError(f"Field '{self.name}' is frozen; its schema is already in use by a form")
        super().__setattr__(key, value)

    def freeze(self) -> 'Field':
        if not self._frozen:
            self.hints = dict(self.hints)
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def default_value(self) -> Any:
        """The construction-time value of this field."""
        if self.initial_value is not _UNSET:
            return self.initial_value
        if self.type == FieldType.CHECKBOX:
            return False
        return None

    @property
    def is_required(self) -> bool:
        return bool(self.rules and self.rules.required)

    # -- Types ---
    def of_type(self, field_type: Union[FieldType, str]) -> 'Field':
        try:
            self.type = FieldType(field_type)
        except ValueError:
            raise SchemaError(f"Field '{self.name}' has unknown type {field_type!r}") from None
        return self

    def text(self) -> 'Field':
        return self.of_type(FieldType.TEXT)

    def email_input(self) -> 'Field':
        return self.of_type(FieldType.EMAIL)

    def password(self) -> 'Field':
        return self.of_type(FieldType.PASSWORD)

    def number(self) -> 'Field':
        return self.of_type(FieldType.NUMBER)

    def date(self) -> 'Field':
        return self.of_type(FieldType.DATE)

    def time(self) -> 'Field':
        return self.of_type(FieldType.TIME)

    def checkbox(self) -> 'Field':
        return self.of_type(FieldType.CHECKBOX)

    def radio(self, options: List[Any]) -> 'Field':
        return self.of_type(FieldType.RADIO).choices(options)

    def select(self, options: List[Any]) -> 'Field':
        return self.of_type(FieldType.SELECT).choices(options)

    def textarea(self, rows: int = 4, cols: int = 50) -> 'Field':
        return self.of_type(FieldType.TEXTAREA).size(rows, cols)

    def file(self) -> 'Field':
        return self.of_type(FieldType.FILE)

    def custom_input(self) -> 'Field':
        return self.of_type(FieldType.CUSTOM)
    # -- End Types ---

    def initial(self, value: Any) -> 'Field':
        """Sets the construction-time value of the field."""
        self.initial_value = value
        return self

    def label_text(self, label: str) -> 'Field':
        self.label = label
        return self

    def placeholder_text(self, placeholder: str) -> 'Field':
        self.placeholder = placeholder
        return self

    def hint(self, **hints: Any) -> 'Field':
        """Adds presentation hints passed through untouched to rendering."""
        self.hints = {**self.hints, **hints}
        return self

    def choices(self, options: List[Any]) -> 'Field':
        self.options = tuple(options)
        return self

    def size(self, rows: int, cols: int) -> 'Field':
        self.rows = rows
        self.cols = cols
        return self

    def _with_rules(self, **changes: Any) -> 'Field':
        current = self.rules.model_dump() if self.rules else {}
        self.rules = ValidationRules(**{**current, **changes})
        return self

    def required(self) -> 'Field':
        return self._with_rules(required=True)

    def min_length(self, length: int) -> 'Field':
        return self._with_rules(min_length=length)

    def max_length(self, length: int) -> 'Field':
        return self._with_rules(max_length=length)

    def min_value(self, min_val: Union[int, float]) -> 'Field':
        return self._with_rules(min=min_val)

    def max_value(self, max_val: Union[int, float]) -> 'Field':
        return self._with_rules(max=max_val)

    def regex(self, pattern: Union[str, re.Pattern], error_message: str = None) -> 'Field':
        return self._with_rules(regex=pattern, regex_error=error_message)

    def email(self) -> 'Field':
        return self._with_rules(email=True)

    def pattern(self, pattern: Union[str, re.Pattern], error_message: str = None) -> 'Field':
        return self._with_rules(pattern=pattern, pattern_error=error_message)

    def rules_from(self, rules: Union[ValidationRules, Mapping[str, Any]]) -> 'Field':
        """Replaces the declarative rules wholesale."""
        if not isinstance(rules, ValidationRules):
            rules = ValidationRules(**rules)
        self.rules = rules
        return self

    def custom(self, validation_func: Callable[[Any], Any]) -> 'Field':
        """Sets a custom validator; it may return a message or an awaitable of one."""
        self.custom_validator = validation_func
        return self

    def validate_with(self, policy: Union[ValidationPolicy, str]) -> 'Field':
        """Chooses how declarative rules and the custom validator combine."""
        try:
            self.policy = ValidationPolicy(policy)
        except ValueError:
            valid = ", ".join(p.value for p in ValidationPolicy)
            raise SchemaError(f"Policy must be one of: {valid}") from None
        return self

    def format(self, formatter: Callable[[Any], Any]) -> 'Field':
        """Sets a formatter applied to every changed value before storage."""
        self.formatter = formatter
        return self

    def show_when(self, predicate: Callable[[Mapping[str, Any]], Any]) -> 'Field':
        """Sets a predicate over the current values deciding whether the field renders."""
        self.visible_when = predicate
        return self

    def check(self) -> None:
        if self.type in CHOICE_TYPES and not self.options:
            raise SchemaError(f"Field '{self.name}' of type '{self.type.value}' requires options")


class Schema:
    """
    Defines the fields of a form in declaration order.
    """
    def __init__(self):
        self.fields: Dict[str, Field] = {}
        self._frozen = False

    def field(self, name: str) -> Field:
        """Adds a field to the schema."""
        if self._frozen:
            raise SchemaError(f"Cannot add field '{name}'; the schema is already in use by a form")
        if not isinstance(name, str) or not name:
            raise SchemaError(f"Field names must be non-empty strings, got {name!r}")
        if name in self.fields:
            raise SchemaError(f"Field '{name}' is declared twice")
        field = Field(name)
        self.fields[name] = field
        return field

    def __getitem__(self, name: str) -> Field:
        return self.fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields.values())

    def __len__(self) -> int:
        return len(self.fields)

    def names(self) -> List[str]:
        return list(self.fields)

    def check(self) -> None:
        """Raises SchemaError for any field that cannot be rendered or validated."""
        for field in self.fields.values():
            field.check()

    def freeze(self) -> 'Schema':
        self.check()
        for field in self.fields.values():
            field.freeze()
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> 'Schema':
        """
        Builds a schema from a mapping of field name to field configuration.

        A non-mapping entry is shorthand for a default field with that
        initial value.
        """
        schema = cls()
        for name, entry in config.items():
            field = schema.field(name)
            if not isinstance(entry, Mapping):
                field.initial(entry)
                continue

            try:
                parsed = FieldConfig.model_validate(entry)
            except ValidationError as e:
                raise SchemaError(f"Invalid configuration for field '{name}': {e}") from e

            field.of_type(parsed.type)
            if "value" in parsed.model_fields_set:
                field.initial(parsed.value)
            if parsed.validation is not None:
                field.rules_from(parsed.validation)
            if parsed.custom_validation is not None:
                field.custom(parsed.custom_validation)
            if parsed.format is not None:
                field.format(parsed.format)
            if parsed.show_when is not None:
                field.show_when(parsed.show_when)
            if parsed.options is not None:
                field.choices(parsed.options)
            if parsed.label is not None:
                field.label_text(parsed.label)
            if parsed.placeholder is not None:
                field.placeholder_text(parsed.placeholder)
            if parsed.rows is not None or parsed.cols is not None:
                field.size(parsed.rows or field.rows, parsed.cols or field.cols)
            field.validate_with(parsed.policy)
            if parsed.model_extra:
                field.hint(**parsed.model_extra)

        logger.debug("Built schema with fields %s", schema.names())
        return schema
