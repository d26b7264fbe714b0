"""
Tests for submission form validation and the create/edit handler.
"""
import pytest
from pydantic import ValidationError

from adahi.forms.submission_form import (
    BLANK_FORM,
    SubmissionForm,
    SubmissionFormHandler,
    form_values_from,
)
from adahi.forms.validation import validate_form
from adahi.gateways.store import SubmissionQuery
from adahi.schemas.submission import SubmissionData


@pytest.mark.parametrize("phone", ["0771234567", "0781234567", "0791234567"])
def test_phone_accepts_local_mobile_prefixes(submission_payload, phone):
    form, errors = validate_form(SubmissionForm, {**submission_payload, "phone_number": phone})
    assert errors == {}
    assert form.phone_number == phone


@pytest.mark.parametrize("phone", ["0761234567", "07712345", "077123456789", "+962791234567", ""])
def test_phone_rejects_everything_else(submission_payload, phone):
    form, errors = validate_form(SubmissionForm, {**submission_payload, "phone_number": phone})
    assert form is None
    assert "phone_number" in errors
    assert "077" in errors["phone_number"]


def test_blank_form_reports_every_required_field():
    form, errors = validate_form(SubmissionForm, dict(BLANK_FORM))
    assert form is None
    assert errors["donor_name"] == "اسم المتبرع مطلوب"
    assert errors["sacrifice_for"] == "حقل 'الاضحية باسم' مطلوب"
    assert "phone_number" in errors
    assert errors["distribution_preference"] == "الرجاء اختيار لمن ستوزع الأضحية"


def test_unknown_distribution_is_rejected(submission_payload):
    form, errors = validate_form(
        SubmissionForm, {**submission_payload, "distribution_preference": "amman"}
    )
    assert form is None
    assert list(errors) == ["distribution_preference"]


def test_unanswered_radio_is_rejected(submission_payload):
    payload = {**submission_payload}
    del payload["wants_to_attend"]
    form, errors = validate_form(SubmissionForm, payload)
    assert form is None
    assert errors == {"wants_to_attend": "الرجاء تحديد الرغبة في الحضور"}


def test_unknown_field_is_rejected(submission_payload):
    form, errors = validate_form(SubmissionForm, {**submission_payload, "user_id": "someone"})
    assert form is None
    assert errors == {"user_id": "حقل غير مسموح به"}


@pytest.mark.parametrize(
    "flag, field",
    [
        ("wants_from_sacrifice", "sacrifice_wishes"),
        ("payment_confirmed", "receipt_book_number"),
        ("payment_confirmed", "voucher_number"),
        ("through_intermediary", "intermediary_name"),
    ],
)
def test_conditional_field_required_when_flag_set(submission_payload, flag, field):
    payload = {
        **submission_payload,
        flag: "yes",
        "sacrifice_wishes": "liver",
        "receipt_book_number": "12",
        "voucher_number": "345",
        "intermediary_name": "Omar",
    }
    payload[field] = "   "
    form, errors = validate_form(SubmissionForm, payload)
    assert form is None
    assert list(errors) == [field]


def test_conditional_fields_cleared_when_flag_unset(submission_payload):
    payload = {
        **submission_payload,
        "payment_confirmed": "no",
        "receipt_book_number": "12",
        "voucher_number": "345",
    }
    form, errors = validate_form(SubmissionForm, payload)
    assert errors == {}
    data = form.to_data()
    assert data.payment_confirmed is False
    assert data.receipt_book_number is None
    assert data.voucher_number is None


def test_radio_answers_accept_booleans(submission_payload):
    payload = {**submission_payload, "wants_to_attend": True, "payment_confirmed": False}
    form, errors = validate_form(SubmissionForm, payload)
    assert errors == {}
    assert form.to_data().wants_to_attend is True


def test_submission_data_refuses_missing_conditionals():
    with pytest.raises(ValidationError):
        SubmissionData(
            donor_name="Ahmad",
            sacrifice_for="Father",
            phone_number="0791234567",
            wants_to_attend=False,
            wants_from_sacrifice=False,
            payment_confirmed=False,
            through_intermediary=True,
            intermediary_name="  ",
            distribution_preference="fund",
        )


# =============================================================================
# Handler
# =============================================================================

def test_missing_wishes_never_reaches_the_store(store, regular_user, signed_in, submission_payload):
    context = signed_in(regular_user.email)
    payload = {**submission_payload, "wants_from_sacrifice": "yes", "sacrifice_wishes": ""}

    outcome = SubmissionFormHandler(context).submit(payload)

    assert outcome.success is False
    assert outcome.errors == {"sacrifice_wishes": "الرجاء كتابة ماذا تريد من الأضحية"}
    assert store.query_submissions(SubmissionQuery()) == []
    assert context.notifier.peek()[-1].variant == "destructive"


def test_create_resets_form_and_stores_owned_record(store, regular_user, signed_in, submission_payload):
    context = signed_in(regular_user.email)

    outcome = SubmissionFormHandler(context).submit(submission_payload)

    assert outcome.success is True
    assert outcome.values == BLANK_FORM
    stored = store.query_submissions(SubmissionQuery(user_id=regular_user.id))
    assert len(stored) == 1
    assert stored[0].user_email == regular_user.email
    assert stored[0].status == "pending"
    assert context.submissions[0].id == stored[0].id


def test_guest_is_sent_to_login(manager, submission_payload):
    context = manager.open(pathname="/dashboard")

    outcome = SubmissionFormHandler(context).submit(submission_payload)

    assert outcome.success is False
    assert context.navigator.take() == "/auth/login?redirect=/dashboard"
    context.teardown()


def test_edit_closes_and_keeps_owner(
    store, regular_user, admin_user, signed_in, submission_payload, submission_data
):
    owner = signed_in(regular_user.email)
    created = owner.add_submission(submission_data())
    admin = signed_in(admin_user.email)

    values = form_values_from(admin.all_submissions[0])
    values["donor_name"] = "Ahmad Ali"
    outcome = SubmissionFormHandler(admin, editing_id=created.id).submit(values)

    assert outcome.success is True
    assert outcome.closed is True
    stored = store.get_submission(created.id)
    assert stored.donor_name == "Ahmad Ali"
    assert stored.user_id == regular_user.id


def test_form_values_from_uses_radio_answers(regular_user, signed_in, submission_data):
    context = signed_in(regular_user.email)
    created = context.add_submission(submission_data(wants_to_attend=True))

    values = form_values_from(context.submissions[0])

    assert context.submissions[0].id == created.id
    assert values["wants_to_attend"] == "yes"
    assert values["payment_confirmed"] == "no"
    assert values["sacrifice_wishes"] == ""
    assert values["distribution_preference"] == "gaza"
