from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.sql import func
from .database import Base
from .student import new_id


class StudentDocument(Base):
    __tablename__ = "student_documents"
    __table_args__ = (
        UniqueConstraint("student_id", "document_type", name="uq_student_documents_student_type"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("students.id"), index=True, nullable=False)
    document_type = Column(String(50), nullable=False)
    file_path = Column(String(500), index=True, nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending | approved | re-upload
    admin_note = Column(Text, nullable=True)
    reviewed_by = Column(String(36), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class StudentForm(Base):
    __tablename__ = "student_forms"

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("students.id"), index=True, nullable=False)
    form_name = Column(String(255), nullable=False)
    exam_type = Column(String(50), nullable=True)
    round = Column(String(50), nullable=True)
    file_path = Column(String(500), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
