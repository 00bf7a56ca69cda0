# backend/models/shop_profile.py
from sqlalchemy import Column, Integer, String, Text, DateTime, func
from database import Base


# Singleton row with the bakery's public details
class ShopProfile(Base):
    __tablename__ = "shop_profile"

    id = Column(Integer, primary_key=True, index=True)
    shop_name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    about_us = Column(Text, nullable=True)

    facebook_url = Column(String, nullable=True)
    instagram_url = Column(String, nullable=True)
    twitter_url = Column(String, nullable=True)
    github_url = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
