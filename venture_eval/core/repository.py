"""
Evaluation store over a SQLAlchemy session.

Writes flush so generated ids are available immediately; the caller
decides when to commit() or rollback().
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from venture_eval.core.models import (
    Company,
    Evaluation,
    Founder,
    MarketInsight,
    MonitoringAlertRecord,
    MonitoringMetricRecord,
)

logger = logging.getLogger(__name__)

COMPANY_FIELDS = (
    "website",
    "description",
    "industry",
    "founded_year",
    "employee_count",
    "location",
)


class EvaluationStore:
    """Persistence for companies, founders, evaluations and monitoring."""

    def __init__(self, session: Session):
        self.session = session

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    # =========================================================================
    # Companies and founders
    # =========================================================================

    def find_company_by_name(self, name: str) -> Optional[Company]:
        """First company whose name contains ``name``, case-insensitive."""
        return (
            self.session.query(Company)
            .filter(Company.name.ilike(f"%{name}%"))
            .order_by(Company.id)
            .first()
        )

    def get_company(self, company_id: int) -> Optional[Company]:
        return self.session.get(Company, company_id)

    def get_companies(self, company_ids: Sequence[int]) -> Dict[int, Company]:
        if not company_ids:
            return {}
        rows = self.session.query(Company).filter(Company.id.in_(list(company_ids))).all()
        return {c.id: c for c in rows}

    def create_company(self, name: str, **fields: Any) -> Company:
        company = Company(name=name, **{k: v for k, v in fields.items() if k in COMPANY_FIELDS})
        self.session.add(company)
        self.session.flush()
        logger.debug(f"Created company {company.id} ({name})")
        return company

    def fill_company(self, company: Company, **fields: Any) -> Company:
        """Set fields that are still empty on ``company``; existing values win."""
        changed = False
        for key in COMPANY_FIELDS:
            value = fields.get(key)
            if value is not None and getattr(company, key) in (None, ""):
                setattr(company, key, value)
                changed = True
        if changed:
            company.updated_at = datetime.utcnow()
            self.session.flush()
        return company

    def create_founder(self, company_id: int, name: str, **fields: Any) -> Founder:
        founder = Founder(company_id=company_id, name=name, **fields)
        self.session.add(founder)
        self.session.flush()
        return founder

    def get_founders(self, company_id: int) -> List[Founder]:
        return (
            self.session.query(Founder)
            .filter(Founder.company_id == company_id)
            .order_by(Founder.id)
            .all()
        )

    # =========================================================================
    # Evaluations
    # =========================================================================

    def create_evaluation(self, company_id: int, **fields: Any) -> Evaluation:
        evaluation = Evaluation(company_id=company_id, **fields)
        self.session.add(evaluation)
        self.session.flush()
        return evaluation

    def attach_dd_report(self, evaluation: Evaluation, report: Dict[str, Any]) -> Evaluation:
        evaluation.dd_report = report
        self.session.flush()
        return evaluation

    def get_evaluation(self, evaluation_id: int) -> Optional[Evaluation]:
        return self.session.get(Evaluation, evaluation_id)

    def list_recent_evaluations(self, limit: int = 10) -> List[Evaluation]:
        return (
            self.session.query(Evaluation)
            .order_by(Evaluation.created_at.desc(), Evaluation.id.desc())
            .limit(limit)
            .all()
        )

    def list_high_score_evaluations(self, min_score: float = 70, limit: int = 20) -> List[Evaluation]:
        return (
            self.session.query(Evaluation)
            .filter(Evaluation.overall_score >= min_score)
            .order_by(Evaluation.overall_score.desc(), Evaluation.id.desc())
            .limit(limit)
            .all()
        )

    def list_company_evaluations(self, company_id: int) -> List[Evaluation]:
        return (
            self.session.query(Evaluation)
            .filter(Evaluation.company_id == company_id)
            .order_by(Evaluation.created_at.desc(), Evaluation.id.desc())
            .all()
        )

    def create_market_insight(self, industry: str, **fields: Any) -> MarketInsight:
        insight = MarketInsight(industry=industry, **fields)
        self.session.add(insight)
        self.session.flush()
        return insight

    # =========================================================================
    # Monitoring
    # =========================================================================

    def save_alert(self, **fields: Any) -> MonitoringAlertRecord:
        record = MonitoringAlertRecord(**fields)
        self.session.add(record)
        self.session.flush()
        return record

    def save_metrics(self, **fields: Any) -> MonitoringMetricRecord:
        record = MonitoringMetricRecord(**fields)
        self.session.add(record)
        self.session.flush()
        return record

    def list_alerts(
        self,
        company_ids: Sequence[int],
        severity: Optional[str] = None,
        include_acknowledged: bool = False,
        limit: int = 100,
    ) -> List[MonitoringAlertRecord]:
        query = self.session.query(MonitoringAlertRecord).filter(
            MonitoringAlertRecord.company_id.in_(list(company_ids))
        )
        if severity:
            query = query.filter(MonitoringAlertRecord.severity == severity)
        if not include_acknowledged:
            query = query.filter(MonitoringAlertRecord.acknowledged.is_(False))
        return query.order_by(MonitoringAlertRecord.created_at.desc()).limit(limit).all()

    def acknowledge_alert(self, alert_id: str) -> bool:
        record = self.session.get(MonitoringAlertRecord, alert_id)
        if record is None:
            return False
        record.acknowledged = True
        self.session.flush()
        return True

    def latest_metrics(self, company_ids: Sequence[int]) -> List[MonitoringMetricRecord]:
        """Most recent metrics row per company, in input order."""
        latest: List[MonitoringMetricRecord] = []
        for company_id in company_ids:
            row = (
                self.session.query(MonitoringMetricRecord)
                .filter(MonitoringMetricRecord.company_id == company_id)
                .order_by(MonitoringMetricRecord.id.desc())
                .first()
            )
            if row is not None:
                latest.append(row)
        return latest
