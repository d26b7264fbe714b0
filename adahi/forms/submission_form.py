# adahi/forms/submission_form.py
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ConfigDict, field_validator

from adahi.core.navigation import login_redirect
from adahi.forms.validation import SUMMARY_MESSAGE, FormSchema, form_error, validate_form
from adahi.schemas.submission import (
    DISTRIBUTION_LABELS,
    SubmissionData,
    SubmissionRead,
    missing_conditional_fields,
)
from adahi.services.session_context import SessionContext

PHONE_PATTERN = re.compile(r"^07[789]\d{7}$")

YES_NO_FIELDS = {
    "wants_to_attend": "الرجاء تحديد الرغبة في الحضور",
    "wants_from_sacrifice": "الرجاء تحديد الرغبة في أخذ جزء من الأضحية",
    "payment_confirmed": "الرجاء تأكيد حالة الدفع",
    "through_intermediary": "الرجاء تحديد ما إذا كانت الأضحية عن طريق وسيط",
}

REQUIRED_TEXT_FIELDS = {
    "donor_name": "اسم المتبرع مطلوب",
    "sacrifice_for": "حقل 'الاضحية باسم' مطلوب",
}

# What the form shows after a successful create
BLANK_FORM: dict[str, Any] = {
    "donor_name": "",
    "sacrifice_for": "",
    "phone_number": "",
    "wants_to_attend": "no",
    "wants_from_sacrifice": "no",
    "sacrifice_wishes": "",
    "payment_confirmed": "no",
    "receipt_book_number": "",
    "voucher_number": "",
    "through_intermediary": "no",
    "intermediary_name": "",
    "distribution_preference": None,
}


class SubmissionForm(FormSchema):
    """
    Raw submission form as typed by the user.

    Radio answers are "yes"/"no" (booleans are accepted too); they become
    booleans in `to_data()`.
    """

    model_config = ConfigDict(extra="forbid", validate_default=True)

    donor_name: str = ""
    sacrifice_for: str = ""
    phone_number: str = ""
    wants_to_attend: str | None = None
    wants_from_sacrifice: str | None = None
    sacrifice_wishes: str | None = None
    payment_confirmed: str | None = None
    receipt_book_number: str | None = None
    voucher_number: str | None = None
    through_intermediary: str | None = None
    intermediary_name: str | None = None
    distribution_preference: str | None = None

    @field_validator(*REQUIRED_TEXT_FIELDS)
    @classmethod
    def required_text(cls, v: str, info) -> str:
        v = v.strip()
        if not v:
            raise form_error("required", REQUIRED_TEXT_FIELDS[info.field_name])
        return v

    @field_validator("phone_number")
    @classmethod
    def valid_phone(cls, v: str) -> str:
        v = v.strip()
        if not PHONE_PATTERN.match(v):
            raise form_error(
                "phone",
                "رقم الهاتف غير صالح (يجب أن يبدأ بـ 077 أو 078 أو 079 ويتكون من 10 أرقام)",
            )
        return v

    @field_validator(*YES_NO_FIELDS, mode="before")
    @classmethod
    def yes_or_no(cls, v: Any, info) -> str:
        if isinstance(v, bool):
            return "yes" if v else "no"
        if v not in ("yes", "no"):
            raise form_error("choice", YES_NO_FIELDS[info.field_name])
        return v

    @field_validator("distribution_preference")
    @classmethod
    def known_distribution(cls, v: str | None) -> str:
        if v not in DISTRIBUTION_LABELS:
            raise form_error("choice", "الرجاء اختيار لمن ستوزع الأضحية")
        return v

    def values(self) -> dict[str, Any]:
        """Form values with radio answers turned into booleans."""
        values = self.model_dump()
        for name in YES_NO_FIELDS:
            values[name] = values[name] == "yes"
        return values

    def cross_field_errors(self) -> dict[str, str]:
        return missing_conditional_fields(self.values())

    def to_data(self) -> SubmissionData:
        return SubmissionData(**self.values())


def form_values_from(submission: SubmissionRead) -> dict[str, Any]:
    """Prefill values for editing an existing submission."""
    values = {name: getattr(submission, name) for name in BLANK_FORM}
    for name in YES_NO_FIELDS:
        values[name] = "yes" if values[name] else "no"
    for name, value in values.items():
        if value is None and name != "distribution_preference":
            values[name] = ""
    return values


@dataclass
class FormOutcome:
    success: bool
    values: dict[str, Any]
    errors: dict[str, str] = field(default_factory=dict)
    submission: SubmissionRead | None = None
    # Edit mode: the edit surface should close
    closed: bool = False


class SubmissionFormHandler:
    """
    Create/edit controller for the submission form.

    Nothing reaches the session context unless the whole form is valid.
    """

    def __init__(self, context: SessionContext, editing_id: str | None = None):
        self.context = context
        self.editing_id = editing_id

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    def submit(self, payload: dict[str, Any]) -> FormOutcome:
        notifier = self.context.notifier

        if self.context.user is None and not self.is_editing:
            notifier.error("يجب تسجيل الدخول لحفظ البيانات.", title="غير مصرح به")
            self.context.navigator.push(login_redirect(self.context.navigator.pathname))
            return FormOutcome(success=False, values=payload)

        form, errors = validate_form(SubmissionForm, payload)
        if form is None:
            notifier.error(SUMMARY_MESSAGE)
            return FormOutcome(success=False, values=payload, errors=errors)

        data = form.to_data()
        if self.is_editing:
            result = self.context.update_submission(self.editing_id, data)
        else:
            result = self.context.add_submission(data)

        if result is None:
            notifier.error("لم يتم حفظ البيانات. الرجاء المحاولة مرة أخرى.")
            return FormOutcome(success=False, values=payload)

        notifier.notify(
            "تم تحديث البيانات بنجاح!" if self.is_editing else "تم حفظ البيانات بنجاح!",
            "شكراً لمساهمتك.",
        )
        if self.is_editing:
            return FormOutcome(success=True, values=payload, submission=result, closed=True)
        return FormOutcome(success=True, values=dict(BLANK_FORM), submission=result)
