from pydantic import BaseModel, EmailStr, field_validator, model_validator

from app.models.user import ROLES, LEGACY_ROLE_ALIASES


class UserRegister(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str
    full_name: str
    role: str

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @field_validator("full_name")
    @classmethod
    def full_name_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Full name is required")
        return v

    @field_validator("role")
    @classmethod
    def role_known(cls, v: str) -> str:
        if v not in ROLES and v not in LEGACY_ROLE_ALIASES:
            raise ValueError("Role must be employer or jobSeeker")
        return LEGACY_ROLE_ALIASES.get(v, v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: str
    role: str

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
