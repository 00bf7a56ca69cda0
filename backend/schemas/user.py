from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, Literal
from datetime import datetime

Gender = Literal["male", "female", "other"]

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for registration requests (customers and admins)
class UserCreate(UserBase):
    password: str = Field(min_length=6)
    confirm_password: str = Field(min_length=6)
    full_name: str = Field(min_length=2)
    address: str = Field(min_length=5)
    gender: Gender
    phone_number: str = Field(min_length=10)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

# Profile edit form
class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2)
    address: Optional[str] = Field(None, min_length=5)
    phone_number: Optional[str] = Field(None, min_length=10)
    gender: Optional[Gender] = None

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    role: str
    full_name: str
    address: str
    phone_number: str
    gender: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
