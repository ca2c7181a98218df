import logging

logger = logging.getLogger(__name__)


class SmartFormError(Exception):
    """Base exception for form engine errors."""
    pass


class SchemaError(SmartFormError, ValueError):
    """Raised when a form schema is authored incorrectly."""
    pass


class UnknownFieldError(SchemaError, KeyError):
    """Raised when an event names a field the schema does not declare."""
    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Field '{field_name}' is not declared in the form schema")

    def __str__(self):
        return self.args[0]


class InvalidTransitionError(SmartFormError, TypeError):
    """Raised when the state store receives something that is not a transition."""
    def __init__(self, action):
        self.action = action
        super().__init__(f"Invalid transition: {action!r}")


def global_error_handler(error: Exception, description: str = None):
    logger.error(
        "%s%s: %s",
        f"{description}: " if description else "",
        error.__class__.__name__,
        error,
        exc_info=(type(error), error, error.__traceback__),
    )
