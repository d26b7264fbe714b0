# adahi/schemas/submission.py
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, model_validator
from sqlmodel import SQLModel

DistributionPreference = Literal["ramtha", "gaza", "donor", "fund"]
EntryStatus = Literal["pending", "entered"]
SlaughterStatus = Literal[
    "pending",
    "marked_slaughtered",
    "confirmed_slaughtered",
    "notified",
]

DISTRIBUTION_LABELS: dict[str, str] = {
    "ramtha": "لاهل الرمثا",
    "gaza": "لاهل غزة",
    "donor": "لنفس المتبرع",
    "fund": "لصندوق التكافل والتضامن",
}

# conditional field -> (governing flag, message when missing)
CONDITIONAL_FIELDS: dict[str, tuple[str, str]] = {
    "sacrifice_wishes": (
        "wants_from_sacrifice",
        "الرجاء كتابة ماذا تريد من الأضحية",
    ),
    "receipt_book_number": (
        "payment_confirmed",
        "رقم الدفتر مطلوب عند تأكيد الدفع",
    ),
    "voucher_number": (
        "payment_confirmed",
        "رقم السند مطلوب عند تأكيد الدفع",
    ),
    "intermediary_name": (
        "through_intermediary",
        "اسم الوسيط مطلوب إذا كانت الأضحية عن طريق أحد",
    ),
}

# Fields that can never be changed after creation
IMMUTABLE_FIELDS = frozenset({"id", "user_id", "user_email"})


def missing_conditional_fields(values: dict[str, Any]) -> dict[str, str]:
    """
    Return {field: message} for every conditional field whose governing
    flag is set but which is empty or whitespace.
    """
    errors: dict[str, str] = {}
    for field, (flag, message) in CONDITIONAL_FIELDS.items():
        if not values.get(flag):
            continue
        value = values.get(field)
        if value is None or not str(value).strip():
            errors[field] = message
    return errors


class SubmissionData(SQLModel):
    """
    Validated submission payload handed to the session context.

    Conditional fields are cleared when their flag is false, so the stored
    document satisfies "field present iff flag set".
    """

    model_config = ConfigDict(extra="forbid")

    donor_name: str
    sacrifice_for: str
    phone_number: str
    wants_to_attend: bool
    wants_from_sacrifice: bool
    sacrifice_wishes: str | None = None
    payment_confirmed: bool
    receipt_book_number: str | None = None
    voucher_number: str | None = None
    through_intermediary: bool
    intermediary_name: str | None = None
    distribution_preference: DistributionPreference

    @model_validator(mode="after")
    def enforce_conditional_fields(self) -> "SubmissionData":
        values = self.model_dump()
        missing = missing_conditional_fields(values)
        if missing:
            raise ValueError(
                "missing conditional fields: " + ", ".join(sorted(missing))
            )
        for field, (flag, _message) in CONDITIONAL_FIELDS.items():
            if not values[flag]:
                setattr(self, field, None)
            elif isinstance(values[field], str):
                setattr(self, field, values[field].strip())
        return self


class SubmissionRead(SQLModel):
    """Immutable snapshot of a stored submission."""

    id: str
    user_id: str
    user_email: str | None = None
    donor_name: str
    sacrifice_for: str
    phone_number: str
    wants_to_attend: bool
    wants_from_sacrifice: bool
    sacrifice_wishes: str | None = None
    payment_confirmed: bool
    receipt_book_number: str | None = None
    voucher_number: str | None = None
    through_intermediary: bool
    intermediary_name: str | None = None
    distribution_preference: DistributionPreference
    submission_date: datetime
    status: EntryStatus
    slaughter_status: SlaughterStatus | None = None
    slaughter_date: datetime | None = None
