"""Request/response models for the AI-learning notes tree."""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from learnhub.schemas.common import CamelModel


class NodeOut(BaseModel):
    id: uuid.UUID
    name: str
    parent_id: Optional[uuid.UUID] = None
    path: List[str]
    level: int
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# Path fields are typed Any: a malformed path is answered with the route's
# own 400 message rather than a generic validation error.

class CreateNodeRequest(CamelModel):
    name: Any = None
    parent_path: Any = None


class GetNodesRequest(CamelModel):
    path: Any = None


class SaveNotesRequest(CamelModel):
    path: Any = None
    notes: Optional[str] = None


class AdaptiveQuizRequest(CamelModel):
    path: Any = None
    previous_questions: List[str] = Field(default_factory=list)
    # Entries without a "topic" key are ignored
    wrong_answers: List[Any] = Field(default_factory=list)
    current_performance: float = 0.5


class CreateNodeResponse(CamelModel):
    success: bool = True
    node: NodeOut


class GetNodesResponse(CamelModel):
    current_node: Optional[NodeOut] = None
    children: List[NodeOut]
    path: List[str]


class AdaptiveQuizResponse(CamelModel):
    question: Dict[str, Any]
