"""
Prompt templates for every extraction call site.

Each template asks for a single JSON object; the shape is the contract the
call-site mappers read. Templates are filled with str.format, so literal
braces are doubled.
"""

import json
from typing import Any, Dict, List

ANALYST_SYSTEM_PROMPT = (
    "You are a senior investment analyst at {fund_name}, a seed-stage venture fund "
    "focused on {industry}. Be concise and factual. Return only valid JSON."
)

EXTRACTION_SYSTEM_PROMPT = (
    "You extract structured due diligence data from web search results. "
    "Use null for anything the sources do not support. Return only valid JSON."
)

# =============================================================================
# Quick evaluation
# =============================================================================

SCORE_PROMPT = """Score {company_name} as an investment for {fund_name} (focus: {industry}, B2B preferred, seed stage).
Each score is 0-100.

Data: {data}

Return JSON:
{{"overall_score": number, "team_score": number, "market_score": number, "product_score": number, "traction_score": number, "competitive_advantage_score": number, "business_model_score": number, "meets_criteria": boolean, "strengths": ["str1", "str2", "str3"], "red_flags": ["flag1", "flag2", "flag3"], "reasoning": "brief explanation"}}"""

MEMO_PROMPT = """Write an investment memo on {company_name} for {fund_name}.

Quick score: {score}
Data: {data}

Return JSON:
{{"executive_summary": "2 sentences", "investment_thesis": "why invest", "market_opportunity": "market size/timing", "competitive_landscape": "differentiation", "team_assessment": "team strength", "financial_projections": "projections", "risks_and_mitigations": "key risks", "recommendation": "PASS|WEAK_PASS|CONSIDER|STRONG_CONSIDER|INVEST", "due_diligence_questions": ["q1", "q2", "q3"]}}"""

DD_QUESTIONS_PROMPT = """Draft due diligence questions for {company_name} ({industry}).

Company: {data}

Return 3 questions per category as JSON:
{{"technical": ["q1", "q2", "q3"], "business": ["q1", "q2", "q3"], "financial": ["q1", "q2", "q3"], "legal": ["q1", "q2", "q3"], "market": ["q1", "q2", "q3"], "team": ["q1", "q2", "q3"]}}"""

DD_QUESTION_CATEGORIES = ("technical", "business", "financial", "legal", "market", "team")

# =============================================================================
# Due diligence collectors
# =============================================================================

COLLECTOR_PROMPT = """Analyze {category} due diligence evidence for {company_name}.

Search results:
{evidence}

Extract data and return JSON (numbers are plain numbers, scores are 0-100):
{schema}"""

FINANCIAL_SCHEMA = (
    '{"burn_rate": number, "burn_trend": "increasing|stable|decreasing", '
    '"runway_months": number, "burn_confidence": number, "mrr": number, "arr": number, '
    '"growth_rate": number, "churn_rate": number, "ltv": number, "cac": number, '
    '"ltv_cac_ratio": number, "gross_margin": number, "contribution_margin": number, '
    '"payback_period_months": number, "profitability_score": number, '
    '"total_raised": number, "last_round_size": number, "last_round_date": "YYYY-MM-DD", '
    '"valuation": number, "lead_investors": ["investor1"]}'
)

LEGAL_SCHEMA = (
    '{"licenses": ["license1"], "jurisdictions": ["jurisdiction1"], "compliance_score": number, '
    '"pending_applications": ["app1"], "patents": [{"title": "", "status": "granted", "jurisdiction": ""}], '
    '"trademarks": [], "copyrights": [], "trade_secrets": ["secret1"], "ip_strength": number, '
    '"active_cases": [], "settled_cases": [], "litigation_risk": number, '
    '"jurisdiction": "Delaware", "entity_type": "C-Corp", "subsidiaries": ["sub1"], '
    '"stakeholders": [{"name": "", "role": "", "ownership": number}], '
    '"governance": {"board_size": number, "independent_directors": number, "committees": ["committee1"], '
    '"voting_structure": "", "protective_provisions": ["provision1"]}, '
    '"customer_contracts": {"total_value": number, "term_length_months": number, "key_terms": ["term1"], '
    '"risk_factors": ["risk1"], "risk_score": number}, "supplier_contracts": {}, '
    '"employment_contracts": {}, "contract_risk": "low|medium|high"}'
)

TECHNICAL_SCHEMA = (
    '{"scalability_score": number, "modernity_score": number, "security_score": number, '
    '"maintainability_score": number, "technical_debt": "low|medium|high", '
    '"certifications": ["cert1"], "vulnerabilities": [{"severity": "low|medium|high|critical", '
    '"description": "", "status": "open|patched"}], "data_protection": {"gdpr_compliance": number, '
    '"ccpa_compliance": number, "data_minimization": number, "access_controls": number, '
    '"encryption": number}, "incidents": [], "security_overall": number, "dev_team_size": number, '
    '"velocity": {"sprint_capacity": number, "velocity_trend": "increasing|stable|decreasing", '
    '"blocker_frequency": number, "delivery_predictability": number}, '
    '"code_quality": {"test_coverage": number, "technical_debt_ratio": number, '
    '"code_complexity": number, "duplicated_lines": number, "maintainability_index": number}, '
    '"deployment_frequency": "Daily|Weekly|Monthly", "lead_time": "1-2 days", '
    '"change_failure_rate": number, "api_quality": number, '
    '"dependencies": [{"name": "", "type": "critical|important|optional"}], '
    '"integrations": [], "capabilities": []}'
)

MARKET_SCHEMA = (
    '{"interviews": [], "surveys": [], "nps_score": number, "satisfaction_score": number, '
    '"churn_reasons": ["reason1"], "direct_competitors": [{"name": "", "market_share": number, '
    '"threat_level": "low|medium|high"}], "indirect_competitors": [], '
    '"market_position": {"ranking": number, "market_share": number, "brand_recognition": number, '
    '"customer_loyalty": number, "pricing_power": number}, "differentiation_factors": ["factor1"], '
    '"competitive_advantage": number, "tam": number, "sam": number, "som": number, '
    '"penetration": number, "growth_potential": number, "conversion_rates": {"leads": number, '
    '"qualified": number, "opportunities": number, "closed": number, "conversion_rate": number}, '
    '"sales_cycle_days": number, "average_deal_size": number, '
    '"acquisition_channels": [{"channel": "", "cost": number, "roi": number}]}'
)

TEAM_SCHEMA = (
    '{"founders": [{"name": "", "role": "", "previous_experience": [], "domain_expertise": number}], '
    '"key_employees": [{"role": "", "experience_level": "", "retention_risk": number}], '
    '"board_members": [{"name": "", "background": ""}], "advisors": [{"name": "", "expertise": []}], '
    '"experience_score": number, "domain_expertise": number, "execution_capability": number, '
    '"culture_fit": number, "key_person_risk": number, "hiring_plan": {"total_positions": number, '
    '"critical_positions": ["role1"], "timeline": [], "budget": number, "success_probability": number}, '
    '"talent_pipeline": {"source_quality": number, "response_rate": number, '
    '"conversion_rate": number, "time_to_hire_days": number}, "compensation": '
    '{"market_competitiveness": number, "equity_allocated": number, "retention_packages": boolean, '
    '"performance_incentives": boolean, "benchmark_score": number}, "retention_risk": number}'
)

SYNTHESIS_PROMPT = """Synthesize due diligence findings for {company_name}.

Overall score: {overall_score}
Category scores: {composite_scores}
Category data: {categories}

Return JSON:
{{"keyFindings": ["finding1", "finding2", "finding3"], "redFlags": ["flag1", "flag2"], "mitigationStrategies": ["strategy1", "strategy2"], "followUpActions": ["action1", "action2"]}}"""

# =============================================================================
# Monitoring and market intelligence
# =============================================================================

SENTIMENT_PROMPT = """Rate the overall sentiment of these headlines about {company_name} from -100 (very negative) to 100 (very positive).

Headlines:
{headlines}

Return JSON: {{"sentiment": number}}"""

TREND_PROMPT = """Extract the key {category} trends for the {sector} sector from these articles.

Articles:
{evidence}

Return 3-5 trends as JSON:
{{"trends": [{{"title": "max 60 chars", "description": "2-3 sentences", "impact": "low|medium|high|transformational", "timeframe": "immediate|short-term|medium-term|long-term", "confidence": number, "sources": ["source1"], "affected_sectors": ["sector1"], "investment_implications": ["implication1"], "key_metrics": {{"metric": number}}}}]}}"""

PREDICTION_PROMPT = """Based on these {sector} trends, make 2-3 specific market predictions.

Trends: {trends}

Return JSON:
{{"predictions": [{{"prediction": "", "likelihood": number, "timeline": "", "catalysts": ["catalyst1"], "risks": ["risk1"], "opportunities": ["opportunity1"], "strategic_recommendations": ["recommendation1"], "monitoring_indicators": ["indicator1"]}}]}}"""

THESIS_PROMPT = """Evolve the investment thesis for the {sector} sector given recent trends.

Current thesis: {thesis}
Recent trends: {trends}

Return JSON:
{{"updated_thesis": "2-3 paragraphs", "key_changes": ["change1"], "confidence": number, "reasoning": "1 paragraph", "supporting_data": ["data point 1"]}}"""

OPPORTUNITIES_PROMPT = """From these high-impact trends, list emerging investment opportunities across sectors.

Trends: {trends}

Return JSON: {{"opportunities": ["opportunity1", "opportunity2"]}}"""

RISKS_PROMPT = """From these trends, list the main market risks for a {industry} investor.

Trends: {trends}

Return JSON: {{"risks": ["risk1", "risk2"]}}"""


def to_prompt_json(data: Any) -> str:
    """Compact JSON for embedding in a prompt."""
    return json.dumps(data, default=str, separators=(",", ":"))


def format_evidence(items: List[Dict[str, Any]]) -> str:
    return json.dumps(items, indent=2, default=str)


def analyst_system_prompt(fund_name: str, industry: str) -> str:
    return ANALYST_SYSTEM_PROMPT.format(fund_name=fund_name, industry=industry)


def collector_prompt(category: str, company_name: str, evidence: List[Dict[str, Any]], schema: str) -> str:
    return COLLECTOR_PROMPT.format(
        category=category,
        company_name=company_name,
        evidence=format_evidence(evidence),
        schema=schema,
    )


def headline_list(headlines: List[str]) -> str:
    return "\n".join(f"- {h}" for h in headlines)


def flatten_dd_questions(data: Dict[str, Any]) -> List[str]:
    """Questions from each category, in category order."""
    questions: List[str] = []
    for category in DD_QUESTION_CATEGORIES:
        values = data.get(category)
        if isinstance(values, list):
            questions.extend(q.strip() for q in values if isinstance(q, str) and q.strip())
    return questions
