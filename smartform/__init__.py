from .form.form import Form, FormOptions, FieldUsage, create_form
from .form.schema import Field, FieldType, Schema, ValidationPolicy, ValidationRules
from .form.state import FieldStatus
from .form.render import FieldRenderer, FieldView, FormView, SubmitButtonView
from .exceptions import SmartFormError, SchemaError, UnknownFieldError, InvalidTransitionError

__version__ = "0.1.0"

get_version = lambda: __version__
