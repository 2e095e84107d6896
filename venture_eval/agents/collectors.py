"""
Due diligence category collectors.

Each collector turns a company context into one category record:
search -> extraction over the top three hits -> field mapping. Absent or
unusable fields take the category default. Any failure along the way
returns the full default record flagged with is_default, so collect()
never raises.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple, Type

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agentic.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    FINANCIAL_SCHEMA,
    LEGAL_SCHEMA,
    MARKET_SCHEMA,
    TEAM_SCHEMA,
    TECHNICAL_SCHEMA,
    collector_prompt,
)
from venture_eval.agents import fields as f
from venture_eval.agents.types import (
    Architecture,
    BurnRate,
    CategoryRecord,
    CodeQuality,
    CompanyContext,
    CompensationAnalysis,
    CompetitiveAnalysis,
    ContractAnalysis,
    ContractPortfolio,
    ConversionFunnel,
    CorporateStructure,
    CustomerInsights,
    DataProtection,
    DevelopmentPractice,
    DevelopmentVelocity,
    FinancialHealth,
    FundingHistory,
    Governance,
    Hiring,
    HiringPlan,
    Integration,
    IntellectualProperty,
    LegalCompliance,
    Level,
    LitigationHistory,
    MarketPenetration,
    MarketPosition,
    MarketValidation,
    RegulatoryStatus,
    RevenueMetrics,
    SalesMetrics,
    SecurityPosture,
    TalentPipeline,
    TeamAssessment,
    TeamScore,
    TechnicalDiligence,
    Trend,
    UnitEconomics,
)
from venture_eval.sources.exa.types import EvidenceQuery

logger = logging.getLogger(__name__)

SEARCH_RESULTS = 5
PROMPT_ITEMS = 3
COLLECTOR_MAX_TOKENS = 1500


class BaseCollector(ABC):
    """
    Query -> retrieval -> extraction -> mapping for one category.

    Subclasses set the query template, domains and schema, and map the
    extracted JSON onto their record type.
    """

    CATEGORY: str = ""
    RECORD_CLS: Type[CategoryRecord] = CategoryRecord
    QUERY_TEMPLATE: str = ""
    DOMAINS: Tuple[str, ...] = ()
    SCHEMA: str = ""

    def __init__(self, search_client, llm: LLMClient):
        self.search_client = search_client
        self.llm = llm

    def build_query(self, context: CompanyContext) -> EvidenceQuery:
        return EvidenceQuery(
            text=self.QUERY_TEMPLATE.format(name=context.company_name),
            num_results=SEARCH_RESULTS,
            include_domains=self.DOMAINS,
        )

    def default_record(self, reason: str) -> CategoryRecord:
        return self.RECORD_CLS(is_default=True, failure_reason=reason)

    async def collect(self, context: CompanyContext) -> CategoryRecord:
        try:
            items = await self.search_client.search(self.build_query(context))
            evidence = [item.to_prompt_dict() for item in items[:PROMPT_ITEMS]]
            result = await self.llm.try_extract(
                collector_prompt(self.CATEGORY, context.company_name, evidence, self.SCHEMA),
                system_prompt=EXTRACTION_SYSTEM_PROMPT,
                max_tokens=COLLECTOR_MAX_TOKENS,
            )
            if not result.ok:
                logger.warning(
                    f"{self.CATEGORY} extraction failed for {context.company_name}: {result.reason}"
                )
                return self.default_record(f"extraction: {result.reason}")
            return self.map_record(result.data)
        except Exception as e:
            logger.warning(
                f"{self.CATEGORY} collection failed for {context.company_name}: {e}"
            )
            return self.default_record(f"{type(e).__name__}: {e}")

    @abstractmethod
    def map_record(self, data: Dict[str, Any]) -> CategoryRecord:
        """Map extracted JSON onto the category record."""


class FinancialCollector(BaseCollector):
    CATEGORY = "financial"
    RECORD_CLS = FinancialHealth
    QUERY_TEMPLATE = "{name} financial metrics revenue growth burn rate funding valuation"
    DOMAINS = ("crunchbase.com", "pitchbook.com", "sec.gov", "techcrunch.com", "bloomberg.com")
    SCHEMA = FINANCIAL_SCHEMA

    def map_record(self, data: Dict[str, Any]) -> FinancialHealth:
        burn = BurnRate()
        econ = UnitEconomics()
        return FinancialHealth(
            burn_rate=BurnRate(
                monthly=f.number(data.get("burn_rate"), burn.monthly, minimum=0),
                trend=f.choice(data.get("burn_trend"), Trend, burn.trend),
                runway_months=f.number(data.get("runway_months"), burn.runway_months, minimum=0),
                confidence=f.score(data.get("burn_confidence"), burn.confidence),
            ),
            revenue=RevenueMetrics(
                mrr=f.optional_number(data.get("mrr")),
                arr=f.optional_number(data.get("arr")),
                growth_rate=f.number(data.get("growth_rate"), 0.0),
                churn_rate=f.optional_number(data.get("churn_rate")),
                ltv=f.optional_number(data.get("ltv")),
                cac=f.optional_number(data.get("cac")),
                ltv_cac_ratio=f.optional_number(data.get("ltv_cac_ratio")),
            ),
            unit_economics=UnitEconomics(
                gross_margin=f.number(data.get("gross_margin"), econ.gross_margin),
                contribution_margin=f.number(data.get("contribution_margin"), econ.contribution_margin),
                payback_period_months=f.number(
                    data.get("payback_period_months"), econ.payback_period_months, minimum=0
                ),
                profitability_score=f.score(data.get("profitability_score"), econ.profitability_score),
            ),
            funding=FundingHistory(
                total_raised=f.number(data.get("total_raised"), 0.0, minimum=0),
                last_round_size=f.number(data.get("last_round_size"), 0.0, minimum=0),
                last_round_date=f.text(data.get("last_round_date")),
                valuation=f.optional_number(data.get("valuation")),
                lead_investors=f.str_list(data.get("lead_investors")),
            ),
        )


def _contract(data: Dict[str, Any]) -> ContractAnalysis:
    default = ContractAnalysis()
    return ContractAnalysis(
        total_value=f.number(data.get("total_value"), default.total_value, minimum=0),
        term_length_months=f.number(data.get("term_length_months"), default.term_length_months, minimum=0),
        key_terms=f.str_list(data.get("key_terms")),
        risk_factors=f.str_list(data.get("risk_factors")),
        risk_score=f.score(data.get("risk_score"), default.risk_score),
    )


class LegalCollector(BaseCollector):
    CATEGORY = "legal"
    RECORD_CLS = LegalCompliance
    QUERY_TEMPLATE = "{name} legal compliance regulatory licenses patents litigation"
    DOMAINS = ("sec.gov", "uspto.gov", "patents.google.com", "justia.com")
    SCHEMA = LEGAL_SCHEMA

    def map_record(self, data: Dict[str, Any]) -> LegalCompliance:
        gov = f.section(data, "governance")
        default_gov = Governance()
        default_corp = CorporateStructure()
        return LegalCompliance(
            regulatory=RegulatoryStatus(
                licenses=f.str_list(data.get("licenses")),
                jurisdictions=f.str_list(data.get("jurisdictions")),
                compliance_score=f.score(data.get("compliance_score"), RegulatoryStatus().compliance_score),
                pending_applications=f.str_list(data.get("pending_applications")),
            ),
            intellectual_property=IntellectualProperty(
                patents=f.dict_list(data.get("patents")),
                trademarks=f.dict_list(data.get("trademarks")),
                copyrights=f.dict_list(data.get("copyrights")),
                trade_secrets=f.str_list(data.get("trade_secrets")),
                ip_strength=f.score(data.get("ip_strength"), IntellectualProperty().ip_strength),
            ),
            litigation=LitigationHistory(
                active_cases=f.dict_list(data.get("active_cases")),
                settled_cases=f.dict_list(data.get("settled_cases")),
                risk_score=f.score(data.get("litigation_risk"), LitigationHistory().risk_score),
            ),
            corporate=CorporateStructure(
                jurisdiction=f.text(data.get("jurisdiction"), default_corp.jurisdiction),
                entity_type=f.text(data.get("entity_type"), default_corp.entity_type),
                subsidiaries=f.str_list(data.get("subsidiaries")),
                stakeholders=f.dict_list(data.get("stakeholders")),
                governance=Governance(
                    board_size=f.integer(gov.get("board_size"), default_gov.board_size),
                    independent_directors=f.integer(
                        gov.get("independent_directors"), default_gov.independent_directors
                    ),
                    committees=f.str_list(gov.get("committees")),
                    voting_structure=f.text(gov.get("voting_structure"), default_gov.voting_structure),
                    protective_provisions=f.str_list(gov.get("protective_provisions")),
                ),
            ),
            contracts=ContractPortfolio(
                customer_agreements=_contract(f.section(data, "customer_contracts")),
                supplier_agreements=_contract(f.section(data, "supplier_contracts")),
                employment_agreements=_contract(f.section(data, "employment_contracts")),
                risk_level=f.choice(data.get("contract_risk"), Level, Level.MEDIUM),
            ),
        )


class TechnicalCollector(BaseCollector):
    CATEGORY = "technical"
    RECORD_CLS = TechnicalDiligence
    QUERY_TEMPLATE = "{name} technology architecture security scalability platform"
    DOMAINS = ("github.com", "stackshare.io", "techcrunch.com", "medium.com")
    SCHEMA = TECHNICAL_SCHEMA

    def map_record(self, data: Dict[str, Any]) -> TechnicalDiligence:
        arch = Architecture()
        dp, dp_default = f.section(data, "data_protection"), DataProtection()
        vel, vel_default = f.section(data, "velocity"), DevelopmentVelocity()
        cq, cq_default = f.section(data, "code_quality"), CodeQuality()
        dev_default = DevelopmentPractice()
        return TechnicalDiligence(
            architecture=Architecture(
                scalability_score=f.score(data.get("scalability_score"), arch.scalability_score),
                modernity_score=f.score(data.get("modernity_score"), arch.modernity_score),
                security_score=f.score(data.get("security_score"), arch.security_score),
                maintainability_score=f.score(data.get("maintainability_score"), arch.maintainability_score),
                technical_debt=f.choice(data.get("technical_debt"), Level, arch.technical_debt),
            ),
            security=SecurityPosture(
                certifications=f.str_list(data.get("certifications")),
                vulnerabilities=f.dict_list(data.get("vulnerabilities")),
                data_protection=DataProtection(
                    gdpr_compliance=f.score(dp.get("gdpr_compliance"), dp_default.gdpr_compliance),
                    ccpa_compliance=f.score(dp.get("ccpa_compliance"), dp_default.ccpa_compliance),
                    data_minimization=f.score(dp.get("data_minimization"), dp_default.data_minimization),
                    access_controls=f.score(dp.get("access_controls"), dp_default.access_controls),
                    encryption=f.score(dp.get("encryption"), dp_default.encryption),
                ),
                incident_history=f.dict_list(data.get("incidents")),
                overall_score=f.score(data.get("security_overall"), SecurityPosture().overall_score),
            ),
            development=DevelopmentPractice(
                team_size=f.integer(data.get("dev_team_size"), dev_default.team_size),
                velocity=DevelopmentVelocity(
                    sprint_capacity=f.number(vel.get("sprint_capacity"), vel_default.sprint_capacity, minimum=0),
                    velocity_trend=f.choice(vel.get("velocity_trend"), Trend, vel_default.velocity_trend),
                    blocker_frequency=f.number(
                        vel.get("blocker_frequency"), vel_default.blocker_frequency, minimum=0
                    ),
                    delivery_predictability=f.score(
                        vel.get("delivery_predictability"), vel_default.delivery_predictability
                    ),
                ),
                code_quality=CodeQuality(
                    test_coverage=f.score(cq.get("test_coverage"), cq_default.test_coverage),
                    technical_debt_ratio=f.score(cq.get("technical_debt_ratio"), cq_default.technical_debt_ratio),
                    code_complexity=f.number(cq.get("code_complexity"), cq_default.code_complexity, minimum=0),
                    duplicated_lines=f.score(cq.get("duplicated_lines"), cq_default.duplicated_lines),
                    maintainability_index=f.score(
                        cq.get("maintainability_index"), cq_default.maintainability_index
                    ),
                ),
                deployment_frequency=f.text(
                    data.get("deployment_frequency"), dev_default.deployment_frequency
                ),
                lead_time=f.text(data.get("lead_time"), dev_default.lead_time),
                change_failure_rate=f.score(data.get("change_failure_rate"), dev_default.change_failure_rate),
            ),
            integration=Integration(
                api_quality=f.score(data.get("api_quality"), Integration().api_quality),
                third_party_dependencies=f.dict_list(data.get("dependencies")),
                data_integrations=f.dict_list(data.get("integrations")),
                platform_capabilities=f.dict_list(data.get("capabilities")),
            ),
        )


class MarketCollector(BaseCollector):
    CATEGORY = "market"
    RECORD_CLS = MarketValidation
    QUERY_TEMPLATE = "{name} customers market share competitors customer reviews"
    DOMAINS = ("g2.com", "capterra.com", "trustpilot.com", "techcrunch.com")
    SCHEMA = MARKET_SCHEMA

    def map_record(self, data: Dict[str, Any]) -> MarketValidation:
        pos, pos_default = f.section(data, "market_position"), MarketPosition()
        funnel, funnel_default = f.section(data, "conversion_rates"), ConversionFunnel()
        pen = MarketPenetration()
        sales = SalesMetrics()
        return MarketValidation(
            customers=CustomerInsights(
                interviews=f.dict_list(data.get("interviews")),
                surveys=f.dict_list(data.get("surveys")),
                nps_score=f.optional_number(data.get("nps_score")),
                satisfaction_score=f.score(data.get("satisfaction_score"), CustomerInsights().satisfaction_score),
                churn_reasons=f.str_list(data.get("churn_reasons")),
            ),
            competition=CompetitiveAnalysis(
                direct_competitors=f.dict_list(data.get("direct_competitors")),
                indirect_competitors=f.dict_list(data.get("indirect_competitors")),
                market_position=MarketPosition(
                    ranking=f.integer(pos.get("ranking"), pos_default.ranking),
                    market_share=f.score(pos.get("market_share"), pos_default.market_share),
                    brand_recognition=f.score(pos.get("brand_recognition"), pos_default.brand_recognition),
                    customer_loyalty=f.score(pos.get("customer_loyalty"), pos_default.customer_loyalty),
                    pricing_power=f.score(pos.get("pricing_power"), pos_default.pricing_power),
                ),
                differentiation_factors=f.str_list(data.get("differentiation_factors")),
                competitive_advantage=f.score(
                    data.get("competitive_advantage"), CompetitiveAnalysis().competitive_advantage
                ),
            ),
            penetration=MarketPenetration(
                tam=f.number(data.get("tam"), pen.tam, minimum=0),
                sam=f.number(data.get("sam"), pen.sam, minimum=0),
                som=f.number(data.get("som"), pen.som, minimum=0),
                current_penetration=f.score(data.get("penetration"), pen.current_penetration),
                growth_potential=f.score(data.get("growth_potential"), pen.growth_potential),
            ),
            sales=SalesMetrics(
                conversion_rates=ConversionFunnel(
                    leads=f.number(funnel.get("leads"), funnel_default.leads, minimum=0),
                    qualified=f.number(funnel.get("qualified"), funnel_default.qualified, minimum=0),
                    opportunities=f.number(funnel.get("opportunities"), funnel_default.opportunities, minimum=0),
                    closed=f.number(funnel.get("closed"), funnel_default.closed, minimum=0),
                    conversion_rate=f.score(funnel.get("conversion_rate"), funnel_default.conversion_rate),
                ),
                sales_cycle_days=f.number(data.get("sales_cycle_days"), sales.sales_cycle_days, minimum=0),
                average_deal_size=f.number(data.get("average_deal_size"), sales.average_deal_size, minimum=0),
                acquisition_channels=f.dict_list(data.get("acquisition_channels")),
            ),
        )


class TeamCollector(BaseCollector):
    CATEGORY = "team"
    RECORD_CLS = TeamAssessment
    QUERY_TEMPLATE = "{name} founders leadership team executives board advisors"
    DOMAINS = ("linkedin.com", "crunchbase.com", "bloomberg.com", "techcrunch.com")
    SCHEMA = TEAM_SCHEMA

    def map_record(self, data: Dict[str, Any]) -> TeamAssessment:
        ts = TeamScore()
        plan, plan_default = f.section(data, "hiring_plan"), HiringPlan()
        pipe, pipe_default = f.section(data, "talent_pipeline"), TalentPipeline()
        comp, comp_default = f.section(data, "compensation"), CompensationAnalysis()
        return TeamAssessment(
            founders=f.dict_list(data.get("founders")),
            key_employees=f.dict_list(data.get("key_employees")),
            board_members=f.dict_list(data.get("board_members")),
            advisors=f.dict_list(data.get("advisors")),
            team_score=TeamScore(
                experience_score=f.score(data.get("experience_score"), ts.experience_score),
                domain_expertise=f.score(data.get("domain_expertise"), ts.domain_expertise),
                execution_capability=f.score(data.get("execution_capability"), ts.execution_capability),
                culture_fit=f.score(data.get("culture_fit"), ts.culture_fit),
                key_person_risk=f.score(data.get("key_person_risk"), ts.key_person_risk),
            ),
            hiring=Hiring(
                plan=HiringPlan(
                    total_positions=f.integer(plan.get("total_positions"), plan_default.total_positions),
                    critical_positions=f.str_list(plan.get("critical_positions")),
                    timeline=f.dict_list(plan.get("timeline")),
                    budget=f.number(plan.get("budget"), plan_default.budget, minimum=0),
                    success_probability=f.score(
                        plan.get("success_probability"), plan_default.success_probability
                    ),
                ),
                pipeline=TalentPipeline(
                    source_quality=f.score(pipe.get("source_quality"), pipe_default.source_quality),
                    response_rate=f.score(pipe.get("response_rate"), pipe_default.response_rate),
                    conversion_rate=f.score(pipe.get("conversion_rate"), pipe_default.conversion_rate),
                    time_to_hire_days=f.number(
                        pipe.get("time_to_hire_days"), pipe_default.time_to_hire_days, minimum=0
                    ),
                ),
                compensation=CompensationAnalysis(
                    market_competitiveness=f.score(
                        comp.get("market_competitiveness"), comp_default.market_competitiveness
                    ),
                    equity_allocated=f.score(comp.get("equity_allocated"), comp_default.equity_allocated),
                    retention_packages=f.flag(comp.get("retention_packages"), comp_default.retention_packages),
                    performance_incentives=f.flag(
                        comp.get("performance_incentives"), comp_default.performance_incentives
                    ),
                    benchmark_score=f.score(comp.get("benchmark_score"), comp_default.benchmark_score),
                ),
                retention_risk=f.score(data.get("retention_risk"), Hiring().retention_risk),
            ),
        )


COLLECTOR_CLASSES: Tuple[Type[BaseCollector], ...] = (
    FinancialCollector,
    LegalCollector,
    TechnicalCollector,
    MarketCollector,
    TeamCollector,
)


def build_collectors(search_client, llm: LLMClient) -> List[BaseCollector]:
    """One collector per category, in fixed category order."""
    return [cls(search_client, llm) for cls in COLLECTOR_CLASSES]
