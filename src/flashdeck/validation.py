"""Typed request payloads and a validate() helper that never raises."""
import re
from dataclasses import dataclass
from typing import Annotated, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, Field, ValidationError, field_validator, model_validator

EMAIL_RE = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def sanitize(value):
    """Trim and drop angle brackets so stored text can't carry markup."""
    if isinstance(value, str):
        return value.strip().replace("<", "").replace(">", "")
    return value


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


SetName = Annotated[str, BeforeValidator(sanitize), Field(min_length=1, max_length=100)]
SetDescription = Annotated[str, BeforeValidator(sanitize), Field(max_length=500)]
CardSide = Annotated[str, BeforeValidator(sanitize), Field(min_length=1, max_length=1000)]
Difficulty = Annotated[int, Field(ge=1, le=5, strict=True)]
Email = Annotated[str, BeforeValidator(_normalize_email), Field(max_length=255, pattern=EMAIL_RE)]


class SetCreate(BaseModel):
    name: SetName
    description: SetDescription = ""
    difficulty: Difficulty = 3
    starred: bool = False


class SetUpdate(BaseModel):
    name: Optional[SetName] = None
    description: Optional[SetDescription] = None
    difficulty: Optional[Difficulty] = None
    starred: Optional[bool] = None


class FlashcardCreate(BaseModel):
    front: CardSide
    back: CardSide
    starred: bool = False


class FlashcardUpdate(BaseModel):
    front: Optional[CardSide] = None
    back: Optional[CardSide] = None
    starred: Optional[bool] = None


class RegisterInput(BaseModel):
    name: Annotated[str, BeforeValidator(_strip), Field(min_length=2, max_length=50, pattern=r"^[a-zA-Z\s]+$")]
    email: Email
    password: str = Field(min_length=6, max_length=128)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not (re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)):
            raise ValueError(
                "must contain at least one lowercase letter, one uppercase letter, and one number"
            )
        return value


class LoginInput(BaseModel):
    email: Email
    password: str = Field(min_length=6)


class ProfileUpdate(BaseModel):
    name: Optional[Annotated[str, BeforeValidator(sanitize), Field(min_length=2, max_length=50)]] = None
    study_goal: Optional[int] = Field(default=None, ge=1, le=1000)
    theme: Optional[Literal["system", "light", "dark"]] = None
    notifications: Optional[bool] = None


class ReviewInput(BaseModel):
    difficulty: Difficulty
    response_time: int = Field(ge=0)
    correct: Optional[bool] = None

    @model_validator(mode="after")
    def default_correct(self):
        if self.correct is None:
            self.correct = self.difficulty <= 3
        return self


T = TypeVar("T", bound=BaseModel)


@dataclass
class ValidationResult(Generic[T]):
    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None


def _format_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "input"
    msg = first["msg"]
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"{field}: {msg}"


def validate(model: type[T], payload) -> ValidationResult[T]:
    """Validate a dict (or model instance) against model; report the first failure."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return ValidationResult(ok=True, data=model.model_validate(payload))
    except ValidationError as exc:
        return ValidationResult(ok=False, error=_format_error(exc))
