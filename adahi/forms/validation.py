# adahi/forms/validation.py
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticCustomError

FormT = TypeVar("FormT", bound="FormSchema")

# Custom error types carry their own (Arabic) message
ERROR_PREFIX = "adahi_"

GENERIC_MESSAGES = {
    "extra_forbidden": "حقل غير مسموح به",
}
FALLBACK_MESSAGE = "قيمة غير صالحة"

SUMMARY_MESSAGE = "الرجاء تصحيح الأخطاء في النموذج."


def form_error(kind: str, message: str) -> PydanticCustomError:
    """Build a validation error whose text is shown to the user as-is."""
    return PydanticCustomError(ERROR_PREFIX + kind, message)


class FormSchema(BaseModel):
    """Base class for user-facing forms."""

    def cross_field_errors(self) -> dict[str, str]:
        """Rules that involve several fields; {field: message}."""
        return {}


def validate_form(
    schema: type[FormT],
    payload: dict[str, Any],
) -> tuple[FormT | None, dict[str, str]]:
    """
    Validate `payload` against `schema`.

    Returns (form, {}) on success, or (None, {field: message}) with one
    message per failing field. Cross-field rules run only once every
    single field is valid.
    """
    try:
        form = schema.model_validate(payload)
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "__all__"
            if field in errors:
                continue
            if err["type"].startswith(ERROR_PREFIX):
                errors[field] = err["msg"]
            else:
                errors[field] = GENERIC_MESSAGES.get(err["type"], FALLBACK_MESSAGE)
        return None, errors

    errors = form.cross_field_errors()
    if errors:
        return None, errors
    return form, {}
