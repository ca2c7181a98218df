from .schema import Field, FieldType, Schema, ValidationPolicy, ValidationRules
from .validator import Validator, validate
from .pipeline import coerce_value, format_value, is_visible
from .state import FieldStatus, FormSnapshot, FormState, reduce
from .form import Form, FormOptions, FieldUsage, create_form
