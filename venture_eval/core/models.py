"""
SQLAlchemy models for evaluation storage.

Companies and founders are created or enriched during evaluation;
evaluations, market insights and monitoring rows are append-only apart
from alert acknowledgment and the attached due diligence report.
"""
from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Company(Base):
    """A company that has been evaluated or is monitored."""
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    website = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    industry = Column(String(100), nullable=True)
    founded_year = Column(Integer, nullable=True)
    employee_count = Column(Integer, nullable=True)
    location = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "website": self.website,
            "description": self.description,
            "industry": self.industry,
            "founded_year": self.founded_year,
            "employee_count": self.employee_count,
            "location": self.location,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name})>"


class Founder(Base):
    __tablename__ = "founders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(100), nullable=True)
    background = Column(Text, nullable=True)
    previous_companies = Column(JSON, nullable=True)
    education = Column(JSON, nullable=True)
    domain_experience = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "role": self.role,
            "background": self.background,
            "previous_companies": self.previous_companies or [],
            "education": self.education or [],
            "domain_experience": self.domain_experience,
        }


class Evaluation(Base):
    """
    One evaluation run: quick scores, memo and optional due diligence report.
    """
    __tablename__ = "evaluations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)

    overall_score = Column(Float, nullable=False, index=True)
    team_score = Column(Float, nullable=True)
    market_score = Column(Float, nullable=True)
    product_score = Column(Float, nullable=True)
    traction_score = Column(Float, nullable=True)
    competitive_advantage_score = Column(Float, nullable=True)
    business_model_score = Column(Float, nullable=True)
    meets_criteria = Column(Boolean, nullable=False, default=False)

    strengths = Column(JSON, nullable=True)
    red_flags = Column(JSON, nullable=True)
    reasoning = Column(Text, nullable=True)

    investment_memo = Column(Text, nullable=True)
    recommendation = Column(String(30), nullable=True)
    due_diligence_questions = Column(JSON, nullable=True)

    data_quality = Column(String(10), nullable=True)
    dd_report = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "overall_score": self.overall_score,
            "team_score": self.team_score,
            "market_score": self.market_score,
            "product_score": self.product_score,
            "traction_score": self.traction_score,
            "competitive_advantage_score": self.competitive_advantage_score,
            "business_model_score": self.business_model_score,
            "meets_criteria": self.meets_criteria,
            "strengths": self.strengths or [],
            "red_flags": self.red_flags or [],
            "reasoning": self.reasoning,
            "investment_memo": self.investment_memo,
            "recommendation": self.recommendation,
            "due_diligence_questions": self.due_diligence_questions or [],
            "data_quality": self.data_quality,
            "dd_report": self.dd_report,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class MarketInsight(Base):
    __tablename__ = "market_insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    industry = Column(String(100), nullable=False, index=True)
    market_size_billion = Column(Float, nullable=True)  # USD billions
    growth_rate_percent = Column(Float, nullable=True)
    key_trends = Column(JSON, nullable=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    competitive_landscape = Column(JSON, nullable=True)
    regulatory_environment = Column(Text, nullable=True)
    timing_assessment = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "industry": self.industry,
            "market_size_billion": self.market_size_billion,
            "growth_rate_percent": self.growth_rate_percent,
            "key_trends": self.key_trends or [],
            "competitive_landscape": self.competitive_landscape,
            "regulatory_environment": self.regulatory_environment,
            "timing_assessment": self.timing_assessment,
        }


class MonitoringAlertRecord(Base):
    """Persisted portfolio alert. Acknowledgment is the only update."""
    __tablename__ = "monitoring_alerts"

    id = Column(String(64), primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    company_name = Column(String(255), nullable=False)
    category = Column(String(20), nullable=False)
    severity = Column(String(20), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    source = Column(String(500), nullable=True)
    url = Column(String(1000), nullable=True)
    acknowledged = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_alert_company_ack", "company_id", "acknowledged"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "company_name": self.company_name,
            "category": self.category,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "source": self.source,
            "url": self.url,
            "acknowledged": self.acknowledged,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
        }


class MonitoringMetricRecord(Base):
    __tablename__ = "monitoring_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    metric_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    news_volume = Column(Integer, nullable=False, default=0)
    sentiment = Column(Float, nullable=False, default=0.0)
    market_mentions = Column(Integer, nullable=False, default=0)
    competitive_activity = Column(Integer, nullable=False, default=0)
    funding_activity = Column(Boolean, nullable=False, default=False)
    team_changes = Column(Integer, nullable=False, default=0)
    product_updates = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "company_id": self.company_id,
            "date": self.metric_date,
            "news_volume": self.news_volume,
            "sentiment": self.sentiment,
            "market_mentions": self.market_mentions,
            "competitive_activity": self.competitive_activity,
            "funding_activity": self.funding_activity,
            "team_changes": self.team_changes,
            "product_updates": self.product_updates,
        }
