# models.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Literal, Optional


# ─────────────────────────────────────────
# CONVERSATION
# ─────────────────────────────────────────

class SeverityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ChatMessage(BaseModel):
    """One turn of the conversation sent to the AI gateway."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


# ─────────────────────────────────────────
# HEALTH ANALYSIS
# ─────────────────────────────────────────

class Recommendations(BaseModel):
    """
    Categorized advice pulled out of the model reply.
    A category the reply does not mention stays None and is omitted
    from API responses.
    """
    diet: Optional[str] = None
    activities: Optional[str] = None
    lifestyle: Optional[str] = None
    precautions: Optional[str] = None


class Interpretation(BaseModel):
    diseases: List[str] = []
    recommendations: Recommendations = Field(default_factory=Recommendations)
    emergency: bool = False


class AnalysisResult(Interpretation):
    """Interpretation plus the raw reply it was derived from."""
    response: str


class HealthAnalysisRequest(BaseModel):
    """
    Body of POST /health-analysis. Field names follow the web client
    (camelCase); snake_case is accepted as well.
    """
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessage] = Field(min_length=1)
    severity_level: SeverityLevel = Field(default=SeverityLevel.LOW, alias="severityLevel")
    user_id: Optional[str] = Field(default=None, alias="userId")


class HealthAnalysisResponse(BaseModel):
    response: str
    diseases: List[str]
    recommendations: Recommendations
    emergency: bool


class ErrorResponse(BaseModel):
    error: str


# ─────────────────────────────────────────
# SEARCH HISTORY
# ─────────────────────────────────────────

class HealthSearchCreate(BaseModel):
    """What the client stores after a successful analysis."""
    user_id: str = Field(min_length=1)
    symptoms: str
    severity_level: SeverityLevel
    predicted_diseases: List[str] = []
    recommendations: Dict[str, str] = {}
    emergency_triggered: bool = False
    search_location: Optional[str] = None


class HealthSearch(HealthSearchCreate):
    id: str
    created_at: str  # ISO-8601 UTC, also the GSI sort key


# ─────────────────────────────────────────
# PROFILE
# ─────────────────────────────────────────

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[str] = None
    height: Optional[float] = Field(default=None, gt=0)  # cm
    weight: Optional[float] = Field(default=None, gt=0)  # kg
    medical_history: Optional[str] = None


class Profile(ProfileUpdate):
    id: str
    updated_at: Optional[str] = None
