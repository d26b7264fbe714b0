# adahi/forms/auth_forms.py
from pydantic import ConfigDict, field_validator
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from adahi.core.navigation import ADMIN_PATH, DASHBOARD_PATH
from adahi.forms.validation import FormSchema, form_error
from adahi.schemas.user import UserRead

MIN_PASSWORD_LENGTH = 6
MIN_USERNAME_LENGTH = 3


class LoginForm(FormSchema):
    """Email or username, plus password."""

    model_config = ConfigDict(extra="forbid", validate_default=True)

    identifier: str = ""
    password: str = ""
    remember_me: bool = False

    @field_validator("identifier")
    @classmethod
    def identifier_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise form_error("required", "البريد الإلكتروني أو اسم المستخدم مطلوب")
        return v

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise form_error("password", "كلمة المرور يجب أن تكون 6 أحرف على الأقل")
        return v


class RegisterForm(FormSchema):
    """
    Self-service sign-up.

    There is deliberately no admin field: unknown fields are rejected, so a
    client cannot ask for elevated rights.
    """

    model_config = ConfigDict(extra="forbid", validate_default=True)

    username: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""

    @field_validator("username")
    @classmethod
    def username_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < MIN_USERNAME_LENGTH:
            raise form_error("username", "اسم المستخدم يجب أن يكون 3 أحرف على الأقل")
        return v

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise form_error("required", "البريد الإلكتروني مطلوب")
        try:
            _name, email = validate_email(v)
        except PydanticCustomError:
            raise form_error("email", "البريد الإلكتروني غير صالح")
        return email

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise form_error("password", "كلمة المرور يجب أن تكون 6 أحرف على الأقل")
        return v

    @field_validator("confirm_password")
    @classmethod
    def confirm_present(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise form_error("required", "تأكيد كلمة المرور مطلوب")
        return v

    def cross_field_errors(self) -> dict[str, str]:
        if self.password != self.confirm_password:
            return {"confirm_password": "كلمتا المرور غير متطابقتين"}
        return {}


def post_login_redirect(user: UserRead, redirect: str | None = None) -> str:
    """
    Where to send a user after signing in.

    An explicit local `redirect` wins; otherwise admins land on the admin
    dashboard and everyone else on their own dashboard.
    """
    if redirect and redirect.startswith("/") and not redirect.startswith("//"):
        return redirect
    return ADMIN_PATH if user.is_admin else DASHBOARD_PATH
