# adahi/models/submission.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field


class Submission(SQLModel, table=True):
    """
    One Adahi (sacrificial animal) pledge.

    Conditional columns are only populated when their governing flag is set:
      - sacrifice_wishes         <- wants_from_sacrifice
      - receipt_book_number,
        voucher_number           <- payment_confirmed
      - intermediary_name        <- through_intermediary
    """

    __tablename__ = "submissions"

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        primary_key=True,
        index=True,
    )

    # Owner; set once at creation
    user_id: str = Field(
        foreign_key="users.id",
        index=True,
    )
    user_email: str | None = Field(
        default=None,
        description="Owner email, denormalized for admin display",
    )

    donor_name: str
    sacrifice_for: str
    phone_number: str = Field(
        description="Local mobile number: 077/078/079 + 7 digits",
    )

    wants_to_attend: bool = False

    wants_from_sacrifice: bool = False
    sacrifice_wishes: str | None = None

    payment_confirmed: bool = False
    receipt_book_number: str | None = None
    voucher_number: str | None = None

    through_intermediary: bool = False
    intermediary_name: str | None = None

    # ramtha | gaza | donor | fund
    distribution_preference: str

    # Assigned by the store on insert
    submission_date: datetime = Field(index=True)

    # pending | entered
    status: str = Field(
        default="pending",
        index=True,
        description="Entry status (ledger entry confirmed by staff)",
    )

    # pending | marked_slaughtered | confirmed_slaughtered | notified
    slaughter_status: str | None = None
    slaughter_date: datetime | None = None
