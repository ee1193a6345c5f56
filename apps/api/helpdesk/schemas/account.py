from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..core.clock import Timestamp
from ..core.roles import Role, parse_role


class Account(BaseModel):
    uid: str
    email: str
    display_name: str | None = None
    role: Role | None = None
    department: str | None = None
    phone_number: str | None = None
    is_active: bool = True
    # role claim not yet confirmed on the identity provider
    claims_pending: bool = False
    created_at: Timestamp
    updated_at: Timestamp

    @field_validator("role", mode="before")
    @classmethod
    def unknown_role_is_none(cls, v):
        return parse_role(v)

    @classmethod
    def from_doc(cls, doc: dict) -> "Account":
        return cls.model_validate({**doc, "uid": doc["id"]})

    def to_doc(self) -> dict:
        return self.model_dump(mode="json", exclude={"uid"})


class AccountCreateIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    display_name: str = Field(min_length=1, max_length=100)
    role: Role
    department: str | None = Field(default=None, max_length=100)
    phone_number: str | None = Field(default=None, max_length=50)

    @field_validator("password")
    @classmethod
    def password_bytes_le_72(cls, v: str) -> str:
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be <= 72 bytes (bcrypt limit).")
        return v


class ProfileChanges(BaseModel):
    """Account fields editable through the generic update paths. Role is not one of them."""

    model_config = ConfigDict(extra="ignore")

    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone_number: str | None = Field(default=None, max_length=50)
    department: str | None = Field(default=None, max_length=100)

    @field_validator("display_name")
    @classmethod
    def display_name_not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class RoleGrantIn(BaseModel):
    role: Role


class AccountOut(BaseModel):
    user: Account


class AccountListOut(BaseModel):
    employees: list[Account]
    count: int
