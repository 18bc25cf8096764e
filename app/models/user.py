from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.models.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(128), unique=True, index=True, nullable=False)  # identity provider subject
    display_name = Column(String(255), nullable=False)
    avatar = Column(String(512), nullable=True)
    personal_sign = Column(String(255), nullable=True)
    region = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
