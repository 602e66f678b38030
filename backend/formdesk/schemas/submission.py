from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from formdesk.schemas.answers import Answer
from formdesk.schemas.fields import FieldDefinition


class PublicClient(BaseModel):
    name: str
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None

    class Config:
        from_attributes = True


class PublicForm(BaseModel):
    id: str
    name: str
    form_type: str
    client: Optional[PublicClient] = None
    fields: List[FieldDefinition] = Field(default_factory=list)


class SubmissionRequest(BaseModel):
    # keyed by field index; JSON object keys arrive as strings
    answers: Dict[int, Answer] = Field(default_factory=dict)


class SubmissionResult(BaseModel):
    success: bool = True
    response_id: str


class SubmissionIssueOut(BaseModel):
    id: str
    response_id: str
    step_id: Optional[str]
    kind: str
    message: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
