import re
from dataclasses import dataclass
from typing import List, Optional

from jinlibrary.config import settings
from jinlibrary.models import RegistrationRequest

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class TextValidator:
    """Basic checks for the registration form fields."""

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not text.strip()

    @staticmethod
    def validate_email(email: Optional[str]) -> bool:
        if TextValidator.is_blank(email):
            return False
        return bool(_EMAIL_RE.match(email.strip()))

    @staticmethod
    def validate_password(password: Optional[str], min_length: Optional[int] = None) -> bool:
        if not password:
            return False
        return len(password) >= (min_length or settings.min_password_length)

    @staticmethod
    def optional(text: Optional[str]) -> Optional[str]:
        # blank optional fields are sent as absent
        if TextValidator.is_blank(text):
            return None
        return text.strip()


@dataclass
class RegistrationForm:
    account: str = ""
    password: str = ""
    confirm_password: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""

    @property
    def password_mismatch(self) -> bool:
        return bool(self.password) and bool(self.confirm_password) and self.password != self.confirm_password

    def errors(self) -> List[str]:
        problems = []
        if TextValidator.is_blank(self.account):
            problems.append("Account is required.")
        if not TextValidator.validate_password(self.password):
            problems.append(f"Password must be at least {settings.min_password_length} characters.")
        if not self.confirm_password:
            problems.append("Please confirm the password.")
        elif self.password_mismatch:
            problems.append("Passwords do not match.")
        if TextValidator.is_blank(self.name):
            problems.append("Name is required.")
        if not TextValidator.validate_email(self.email):
            problems.append("A valid email address is required.")
        return problems

    @property
    def is_valid(self) -> bool:
        return not self.errors()

    def to_request(self) -> RegistrationRequest:
        problems = self.errors()
        if problems:
            raise ValueError(" ".join(problems))
        return RegistrationRequest(
            account=self.account.strip(),
            password=self.password,
            name=self.name.strip(),
            email=self.email.strip(),
            phone=TextValidator.optional(self.phone),
            address=TextValidator.optional(self.address),
        )
