"""
Pydantic schemas for API requests.
"""
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class EvaluationRequest(BaseModel):
    """Request schema for a startup evaluation."""
    company_name: str = Field(..., min_length=1, max_length=255)
    website: Optional[str] = None
    description: Optional[str] = None
    founder_names: List[str] = Field(default_factory=list)

    @field_validator("company_name")
    @classmethod
    def validate_company_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("company_name cannot be empty")
        return v

    @field_validator("founder_names")
    @classmethod
    def drop_blank_founders(cls, v: List[str]) -> List[str]:
        return [name.strip() for name in v if name and name.strip()]


class DueDiligenceRequest(BaseModel):
    """Request schema for a standalone due diligence report."""
    company_name: str = Field(..., min_length=1, max_length=255)
    website: Optional[str] = None
    industry: Optional[str] = None
    description: Optional[str] = None
    founded_year: Optional[int] = Field(default=None, ge=1800, le=2100)


class PortfolioMonitorRequest(BaseModel):
    company_ids: List[int] = Field(..., min_length=1)


class MarketIntelligenceRequest(BaseModel):
    sectors: List[str] = Field(default_factory=lambda: ["fintech"])

    @field_validator("sectors")
    @classmethod
    def normalize_sectors(cls, v: List[str]) -> List[str]:
        sectors = [s.strip().lower() for s in v if s and s.strip()]
        if not sectors:
            raise ValueError("at least one sector is required")
        return sectors
