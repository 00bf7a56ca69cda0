# backend/models/users.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"

# Represents a user account: credentials, contact details and system role
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_CUSTOMER)

    # Profile data prefilled into the checkout form
    full_name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    gender = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ROLE_ADMIN
