# pulse_analytics/schemas/trackers.py
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class TrackerIn(BaseModel):
    question: str = Field(..., description="Question reference, e.g. standard:12 or custom:7")
    module_type: str


class TrackerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    tenant_id: int
    question: str
    questionable_type: str
    questionable_id: int
    module_type: str
    created_at: Optional[datetime] = None


class TrackerScoreOut(BaseModel):
    tracker: TrackerOut
    kind: str  # likert | multiple_choice
    result: Optional[Dict[str, Any]] = None
