from sqlalchemy import Column, String, Boolean, DateTime, Text
from sqlalchemy.sql import func
from .database import Base
from .student import new_id


class Notice(Base):
    __tablename__ = "notices"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    is_important = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="draft", nullable=False)  # draft | published
    published_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
