from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from formdesk.core.database import Base
from formdesk.models._ids import new_id


class Form(Base):
    __tablename__ = "forms"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True, index=True)
    name = Column(String, nullable=False)
    form_type = Column(String, default="single_page")  # single_page, multi_step

    # {"name": step_id, "email": step_id, "phone": step_id, "postcode": step_id}
    contact_field_map = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client", back_populates="forms")
    steps = relationship(
        "FormStep",
        back_populates="form",
        order_by="FormStep.step_order",
        cascade="all, delete-orphan",
    )
    responses = relationship("Response", back_populates="form", cascade="all, delete-orphan")


class FormStep(Base):
    """One field (single-page form) or one step (multi-step form)."""
    __tablename__ = "form_steps"

    id = Column(String(36), primary_key=True, default=new_id)
    form_id = Column(String(36), ForeignKey("forms.id"), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    placeholder = Column(String, nullable=True)
    question_type = Column(String, nullable=False)  # sp_* kind or legacy step type
    is_required = Column(Boolean, default=False)
    step_order = Column(Integer, nullable=False)

    # Kind-specific settings
    allow_multiple = Column(Boolean, default=False)
    scale_min = Column(Integer, nullable=True)
    scale_max = Column(Integer, nullable=True)
    scale_min_label = Column(String, nullable=True)
    scale_max_label = Column(String, nullable=True)
    number_min = Column(Integer, nullable=True)
    number_max = Column(Integer, nullable=True)
    max_file_size = Column(Integer, nullable=True)  # MB
    allowed_file_types = Column(JSON, nullable=True)
    images_per_row = Column(Integer, nullable=True)

    form = relationship("Form", back_populates="steps")
    options = relationship(
        "FormOption",
        back_populates="step",
        order_by="FormOption.option_order",
        cascade="all, delete-orphan",
    )


class FormOption(Base):
    __tablename__ = "form_options"

    id = Column(String(36), primary_key=True, default=new_id)
    step_id = Column(String(36), ForeignKey("form_steps.id"), nullable=False, index=True)
    label = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    option_order = Column(Integer, default=0)

    step = relationship("FormStep", back_populates="options")
