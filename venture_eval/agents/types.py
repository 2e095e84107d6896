"""
Type definitions for startup evaluation.

Defines data classes for:
- Company context passed to collectors
- The five due-diligence category records and their defaults
- The due-diligence report, quick score, memo and progress events
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from venture_eval.agents.fields import to_jsonable


class Recommendation(str, Enum):
    """Recommendation tiers, lowest first."""

    PASS = "PASS"
    WEAK_PASS = "WEAK_PASS"
    CONSIDER = "CONSIDER"
    STRONG_CONSIDER = "STRONG_CONSIDER"
    INVEST = "INVEST"


# Lower bound (inclusive) of each tier above PASS, highest first
RECOMMENDATION_THRESHOLDS: Tuple[Tuple[int, Recommendation], ...] = (
    (85, Recommendation.INVEST),
    (75, Recommendation.STRONG_CONSIDER),
    (65, Recommendation.CONSIDER),
    (55, Recommendation.WEAK_PASS),
)


def recommendation_for_score(score: float) -> Recommendation:
    for threshold, tier in RECOMMENDATION_THRESHOLDS:
        if score >= threshold:
            return tier
    return Recommendation.PASS


def parse_recommendation(value: Any) -> Optional[Recommendation]:
    if not isinstance(value, str):
        return None
    try:
        return Recommendation(value.strip().upper().replace(" ", "_"))
    except ValueError:
        return None


class Trend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class Level(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class CompanyContext:
    """What collectors know about the company under review."""

    company_name: str
    website: Optional[str] = None
    industry: Optional[str] = None
    description: Optional[str] = None
    founded_year: Optional[int] = None


@dataclass(frozen=True)
class CategoryRecord:
    """
    Base for the five category records.

    is_default is set when the collector fell back to the full default
    record; failure_reason says why. Records and their sections are
    frozen; list-valued findings are copied in by the mappers and are not
    modified afterwards.
    """

    CATEGORY: ClassVar[str] = ""

    is_default: bool = False
    failure_reason: Optional[str] = None


# =============================================================================
# Financial
# =============================================================================


@dataclass(frozen=True)
class BurnRate:
    monthly: float = 0.0
    trend: Trend = Trend.STABLE
    runway_months: float = 12.0
    confidence: float = 30.0


@dataclass(frozen=True)
class RevenueMetrics:
    mrr: Optional[float] = None
    arr: Optional[float] = None
    growth_rate: float = 0.0
    churn_rate: Optional[float] = None
    ltv: Optional[float] = None
    cac: Optional[float] = None
    ltv_cac_ratio: Optional[float] = None


@dataclass(frozen=True)
class UnitEconomics:
    gross_margin: float = 0.0
    contribution_margin: float = 0.0
    payback_period_months: float = 24.0
    profitability_score: float = 40.0


@dataclass(frozen=True)
class FundingHistory:
    total_raised: float = 0.0
    last_round_size: float = 0.0
    last_round_date: Optional[str] = None
    valuation: Optional[float] = None
    lead_investors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FinancialHealth(CategoryRecord):
    CATEGORY: ClassVar[str] = "financial"

    burn_rate: BurnRate = field(default_factory=BurnRate)
    revenue: RevenueMetrics = field(default_factory=RevenueMetrics)
    unit_economics: UnitEconomics = field(default_factory=UnitEconomics)
    funding: FundingHistory = field(default_factory=FundingHistory)


# =============================================================================
# Legal
# =============================================================================


@dataclass(frozen=True)
class RegulatoryStatus:
    licenses: List[str] = field(default_factory=list)
    jurisdictions: List[str] = field(default_factory=list)
    compliance_score: float = 50.0
    pending_applications: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class IntellectualProperty:
    patents: List[Dict[str, Any]] = field(default_factory=list)
    trademarks: List[Dict[str, Any]] = field(default_factory=list)
    copyrights: List[Dict[str, Any]] = field(default_factory=list)
    trade_secrets: List[str] = field(default_factory=list)
    ip_strength: float = 40.0


@dataclass(frozen=True)
class LitigationHistory:
    active_cases: List[Dict[str, Any]] = field(default_factory=list)
    settled_cases: List[Dict[str, Any]] = field(default_factory=list)
    risk_score: float = 30.0


@dataclass(frozen=True)
class Governance:
    board_size: int = 5
    independent_directors: int = 2
    committees: List[str] = field(default_factory=list)
    voting_structure: str = "Standard"
    protective_provisions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CorporateStructure:
    jurisdiction: str = "Delaware"
    entity_type: str = "C-Corp"
    subsidiaries: List[str] = field(default_factory=list)
    stakeholders: List[Dict[str, Any]] = field(default_factory=list)
    governance: Governance = field(default_factory=Governance)


@dataclass(frozen=True)
class ContractAnalysis:
    total_value: float = 0.0
    term_length_months: float = 12.0
    key_terms: List[str] = field(default_factory=list)
    risk_factors: List[str] = field(default_factory=list)
    risk_score: float = 50.0


@dataclass(frozen=True)
class ContractPortfolio:
    customer_agreements: ContractAnalysis = field(default_factory=ContractAnalysis)
    supplier_agreements: ContractAnalysis = field(default_factory=ContractAnalysis)
    employment_agreements: ContractAnalysis = field(default_factory=ContractAnalysis)
    risk_level: Level = Level.MEDIUM


@dataclass(frozen=True)
class LegalCompliance(CategoryRecord):
    CATEGORY: ClassVar[str] = "legal"

    regulatory: RegulatoryStatus = field(default_factory=RegulatoryStatus)
    intellectual_property: IntellectualProperty = field(default_factory=IntellectualProperty)
    litigation: LitigationHistory = field(default_factory=LitigationHistory)
    corporate: CorporateStructure = field(default_factory=CorporateStructure)
    contracts: ContractPortfolio = field(default_factory=ContractPortfolio)


# =============================================================================
# Technical
# =============================================================================


@dataclass(frozen=True)
class Architecture:
    scalability_score: float = 60.0
    modernity_score: float = 60.0
    security_score: float = 60.0
    maintainability_score: float = 60.0
    technical_debt: Level = Level.MEDIUM


@dataclass(frozen=True)
class DataProtection:
    gdpr_compliance: float = 70.0
    ccpa_compliance: float = 70.0
    data_minimization: float = 60.0
    access_controls: float = 70.0
    encryption: float = 80.0


@dataclass(frozen=True)
class SecurityPosture:
    certifications: List[str] = field(default_factory=list)
    vulnerabilities: List[Dict[str, Any]] = field(default_factory=list)
    data_protection: DataProtection = field(default_factory=DataProtection)
    incident_history: List[Dict[str, Any]] = field(default_factory=list)
    overall_score: float = 60.0


@dataclass(frozen=True)
class DevelopmentVelocity:
    sprint_capacity: float = 10.0
    velocity_trend: Trend = Trend.STABLE
    blocker_frequency: float = 2.0
    delivery_predictability: float = 70.0


@dataclass(frozen=True)
class CodeQuality:
    test_coverage: float = 60.0
    technical_debt_ratio: float = 20.0
    code_complexity: float = 3.0
    duplicated_lines: float = 5.0
    maintainability_index: float = 70.0


@dataclass(frozen=True)
class DevelopmentPractice:
    team_size: int = 5
    velocity: DevelopmentVelocity = field(default_factory=DevelopmentVelocity)
    code_quality: CodeQuality = field(default_factory=CodeQuality)
    deployment_frequency: str = "Weekly"
    lead_time: str = "3-5 days"
    change_failure_rate: float = 10.0


@dataclass(frozen=True)
class Integration:
    api_quality: float = 60.0
    third_party_dependencies: List[Dict[str, Any]] = field(default_factory=list)
    data_integrations: List[Dict[str, Any]] = field(default_factory=list)
    platform_capabilities: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class TechnicalDiligence(CategoryRecord):
    CATEGORY: ClassVar[str] = "technical"

    architecture: Architecture = field(default_factory=Architecture)
    security: SecurityPosture = field(default_factory=SecurityPosture)
    development: DevelopmentPractice = field(default_factory=DevelopmentPractice)
    integration: Integration = field(default_factory=Integration)


# =============================================================================
# Market
# =============================================================================


@dataclass(frozen=True)
class CustomerInsights:
    interviews: List[Dict[str, Any]] = field(default_factory=list)
    surveys: List[Dict[str, Any]] = field(default_factory=list)
    nps_score: Optional[float] = None
    satisfaction_score: float = 60.0
    churn_reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MarketPosition:
    ranking: int = 10
    market_share: float = 1.0
    brand_recognition: float = 40.0
    customer_loyalty: float = 60.0
    pricing_power: float = 50.0


@dataclass(frozen=True)
class CompetitiveAnalysis:
    direct_competitors: List[Dict[str, Any]] = field(default_factory=list)
    indirect_competitors: List[Dict[str, Any]] = field(default_factory=list)
    market_position: MarketPosition = field(default_factory=MarketPosition)
    differentiation_factors: List[str] = field(default_factory=list)
    competitive_advantage: float = 50.0


@dataclass(frozen=True)
class MarketPenetration:
    tam: float = 1_000_000_000.0
    sam: float = 100_000_000.0
    som: float = 10_000_000.0
    current_penetration: float = 0.1
    growth_potential: float = 60.0


@dataclass(frozen=True)
class ConversionFunnel:
    leads: float = 1000.0
    qualified: float = 200.0
    opportunities: float = 50.0
    closed: float = 10.0
    conversion_rate: float = 1.0


@dataclass(frozen=True)
class SalesMetrics:
    conversion_rates: ConversionFunnel = field(default_factory=ConversionFunnel)
    sales_cycle_days: float = 90.0
    average_deal_size: float = 25000.0
    acquisition_channels: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class MarketValidation(CategoryRecord):
    CATEGORY: ClassVar[str] = "market"

    customers: CustomerInsights = field(default_factory=CustomerInsights)
    competition: CompetitiveAnalysis = field(default_factory=CompetitiveAnalysis)
    penetration: MarketPenetration = field(default_factory=MarketPenetration)
    sales: SalesMetrics = field(default_factory=SalesMetrics)


# =============================================================================
# Team
# =============================================================================


@dataclass(frozen=True)
class TeamScore:
    experience_score: float = 60.0
    domain_expertise: float = 60.0
    execution_capability: float = 60.0
    culture_fit: float = 60.0
    key_person_risk: float = 40.0


@dataclass(frozen=True)
class HiringPlan:
    total_positions: int = 5
    critical_positions: List[str] = field(default_factory=list)
    timeline: List[Dict[str, Any]] = field(default_factory=list)
    budget: float = 500000.0
    success_probability: float = 70.0


@dataclass(frozen=True)
class TalentPipeline:
    source_quality: float = 70.0
    response_rate: float = 30.0
    conversion_rate: float = 15.0
    time_to_hire_days: float = 45.0


@dataclass(frozen=True)
class CompensationAnalysis:
    market_competitiveness: float = 75.0
    equity_allocated: float = 15.0
    retention_packages: bool = True
    performance_incentives: bool = True
    benchmark_score: float = 70.0


@dataclass(frozen=True)
class Hiring:
    plan: HiringPlan = field(default_factory=HiringPlan)
    pipeline: TalentPipeline = field(default_factory=TalentPipeline)
    compensation: CompensationAnalysis = field(default_factory=CompensationAnalysis)
    retention_risk: float = 30.0


@dataclass(frozen=True)
class TeamAssessment(CategoryRecord):
    CATEGORY: ClassVar[str] = "team"

    founders: List[Dict[str, Any]] = field(default_factory=list)
    key_employees: List[Dict[str, Any]] = field(default_factory=list)
    board_members: List[Dict[str, Any]] = field(default_factory=list)
    advisors: List[Dict[str, Any]] = field(default_factory=list)
    team_score: TeamScore = field(default_factory=TeamScore)
    hiring: Hiring = field(default_factory=Hiring)


# =============================================================================
# Reports
# =============================================================================


@dataclass(frozen=True)
class DueDiligenceReport:
    """Comprehensive due-diligence report. Built once, never updated."""

    report_id: str
    company_name: str
    report_date: str
    overall_score: int
    recommendation: Recommendation
    financial: FinancialHealth
    legal: LegalCompliance
    technical: TechnicalDiligence
    market: MarketValidation
    team: TeamAssessment
    composite_scores: Dict[str, float]
    key_findings: Tuple[str, ...]
    red_flags: Tuple[str, ...]
    mitigation_strategies: Tuple[str, ...]
    follow_up_actions: Tuple[str, ...]
    data_quality: int
    analysis_confidence: int
    information_gaps: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


@dataclass
class InvestmentScore:
    """Quick score from one extraction call."""

    overall_score: float = 0.0
    team_score: float = 0.0
    market_score: float = 0.0
    product_score: float = 0.0
    traction_score: float = 0.0
    competitive_advantage_score: float = 0.0
    business_model_score: float = 0.0
    meets_criteria: bool = False
    strengths: List[str] = field(default_factory=list)
    red_flags: List[str] = field(default_factory=list)
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


MEMO_SECTIONS = (
    "executive_summary",
    "investment_thesis",
    "market_opportunity",
    "competitive_landscape",
    "team_assessment",
    "financial_projections",
    "risks_and_mitigations",
)


@dataclass
class InvestmentMemo:
    executive_summary: str = ""
    investment_thesis: str = ""
    market_opportunity: str = ""
    competitive_landscape: str = ""
    team_assessment: str = ""
    financial_projections: str = ""
    risks_and_mitigations: str = ""
    recommendation: Recommendation = Recommendation.PASS
    due_diligence_questions: List[str] = field(default_factory=list)

    def full_text(self) -> str:
        """Memo sections joined by blank lines."""
        return "\n\n".join(getattr(self, name) for name in MEMO_SECTIONS)

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True)
class ProgressEvent:
    step: str
    progress: int
    message: str
    completed: bool = False
    error: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
