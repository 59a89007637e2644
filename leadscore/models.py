from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


LeadStatus = Literal["new", "contacted", "converted"]

STATUSES = ("new", "contacted", "converted")


class LeadIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    status: LeadStatus = "new"


class Lead(LeadIn):
    id: str
    created_at: str
    updated_at: str


class ScoredLead(LeadIn):
    score: int = Field(ge=1, le=100)


class LeadScore(BaseModel):
    lead_id: str
    score: int = Field(ge=1, le=100)


class AIScoreResult(BaseModel):
    score: int = Field(ge=1, le=100)
    reasoning: str


class LeadAIScore(AIScoreResult):
    lead_id: str


class BulkRequest(BaseModel):
    leads: List[LeadIn]


class Summary(BaseModel):
    count_in: int
    count_out: int
    avg_score: float
    by_status: Dict[str, int] = Field(default_factory=dict)


class BulkResponse(BaseModel):
    results: List[ScoredLead]
    summary: Summary


class GenerationOptions(BaseModel):
    system: str
    temperature: float = 0.7
    max_tokens: int = 60
    model: Optional[str] = None


class RulesModel(BaseModel):
    status_points: Dict[str, int]
    points: Dict[str, int]
    top_tier_domains: List[str]
    good_tlds: List[str]
    consumer_domains: List[str]
    business_tlds: List[str]
    generic_local_parts: List[str]
    legal_suffixes: List[str]
    industry_keywords: List[str]
    startup_keywords: List[str]
    title_keywords: List[str]
    executive_titles: List[str]
    enterprise_domains: List[str]
