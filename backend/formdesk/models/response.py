"""Submitted responses. Written once at submission time, read-only afterwards."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from formdesk.core.database import Base
from formdesk.models._ids import new_id


class Response(Base):
    __tablename__ = "responses"

    id = Column(String(36), primary_key=True, default=new_id)
    form_id = Column(String(36), ForeignKey("forms.id"), nullable=False, index=True)

    # Contact columns extracted from specific answers
    contact_name = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    contact_postcode = Column(String, nullable=True)

    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    form = relationship("Form", back_populates="responses")
    answers = relationship("ResponseAnswer", back_populates="response", cascade="all, delete-orphan")
    frames = relationship(
        "ResponseFrame",
        back_populates="response",
        order_by="ResponseFrame.frame_number",
        cascade="all, delete-orphan",
    )


class ResponseAnswer(Base):
    __tablename__ = "response_answers"

    id = Column(String(36), primary_key=True, default=new_id)
    response_id = Column(String(36), ForeignKey("responses.id"), nullable=False, index=True)
    step_id = Column(String(36), ForeignKey("form_steps.id"), nullable=True, index=True)

    answer_text = Column(Text, nullable=True)
    selected_option_id = Column(String(36), nullable=True)

    # File answers
    file_url = Column(String, nullable=True)
    file_name = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)

    # Dimensions (multi-step forms)
    width = Column(Numeric(10, 2), nullable=True)
    height = Column(Numeric(10, 2), nullable=True)
    depth = Column(Numeric(10, 2), nullable=True)
    units = Column(String, nullable=True)

    scale_rating = Column(Integer, nullable=True)
    frames_count = Column(Integer, nullable=True)

    response = relationship("Response", back_populates="answers")
    step = relationship("FormStep")


class ResponseFrame(Base):
    """Per-frame measurements captured by frames-plan steps."""
    __tablename__ = "response_frames"

    id = Column(String(36), primary_key=True, default=new_id)
    response_id = Column(String(36), ForeignKey("responses.id"), nullable=False, index=True)
    frame_number = Column(Integer, nullable=False)
    image_url = Column(String, nullable=True)
    location_text = Column(Text, nullable=True)
    measurements_text = Column(Text, nullable=True)

    response = relationship("Response", back_populates="frames")


class SubmissionIssue(Base):
    """Operator-facing record of an answer that could not be stored as submitted."""
    __tablename__ = "submission_issues"

    id = Column(String(36), primary_key=True, default=new_id)
    response_id = Column(String(36), ForeignKey("responses.id"), nullable=False, index=True)
    step_id = Column(String(36), nullable=True)
    kind = Column(String, nullable=False)  # upload_failed, answer_insert_failed
    message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
