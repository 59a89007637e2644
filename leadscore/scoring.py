import re
from typing import Any, Dict, Mapping, Union
from pydantic import BaseModel
from .config import load_rules
from .normalizer import clean_str, email_domain, split_email, to_record


PERSONAL_LOCAL_PART = re.compile(r"[a-z]+\.[a-z]+")

COMPANY_LONG = 20
COMPANY_MEDIUM = 12
COMPANY_SHORT = 4
NAME_SHORT = 5


def _contains_any(text: str, terms) -> bool:
    return any(term in text for term in terms)


def _has_legal_suffix(company: str, suffixes) -> bool:
    for suffix in suffixes:
        if company == suffix:
            return True
        if any(company.endswith(sep + suffix) for sep in (" ", ".", ",")):
            return True
    return False


def status_points(lead: Mapping[str, Any], rules: Dict[str, Any]) -> int:
    status = clean_str(lead.get("status")) or "new"
    return int(rules.get("status_points", {}).get(status, 0))


def email_points(lead: Mapping[str, Any], rules: Dict[str, Any]) -> int:
    pts = rules["points"]
    email = clean_str(lead.get("email"))
    if not email:
        return int(pts["missing_email"])
    parts = split_email(email)
    if parts is None:
        return 0
    local, domain = parts
    score = 0
    if domain in rules["top_tier_domains"]:
        score += pts["top_tier_domain"]
    elif any(domain.endswith(tld) for tld in rules["good_tlds"]):
        score += pts["good_tld"]
    elif domain in rules["consumer_domains"]:
        score += pts["consumer_domain"]
    elif any(domain.endswith(tld) for tld in rules["business_tlds"]):
        score += pts["business_tld"]
    if local in rules["generic_local_parts"]:
        score += pts["generic_local_part"]
    if PERSONAL_LOCAL_PART.match(local):
        score += pts["personal_local_part"]
    return int(score)


def company_points(lead: Mapping[str, Any], rules: Dict[str, Any]) -> int:
    pts = rules["points"]
    company = clean_str(lead.get("company"))
    if not company:
        return int(pts["missing_company"])
    name = company.lower()
    score = 0
    if _has_legal_suffix(name, rules["legal_suffixes"]):
        score += pts["legal_suffix"]
    if len(name) > COMPANY_LONG:
        score += pts["company_long"]
    elif len(name) > COMPANY_MEDIUM:
        score += pts["company_medium"]
    elif len(name) < COMPANY_SHORT:
        score += pts["company_short"]
    if _contains_any(name, rules["industry_keywords"]):
        score += pts["industry_keyword"]
    if _contains_any(name, rules["startup_keywords"]):
        score += pts["startup_keyword"]
    return int(score)


def name_points(lead: Mapping[str, Any], rules: Dict[str, Any]) -> int:
    pts = rules["points"]
    name = clean_str(lead.get("name"))
    if not name:
        return int(pts["missing_name"])
    score = 0
    if len(name.split()) >= 2:
        score += pts["full_name"]
    if _contains_any(name.lower(), rules["title_keywords"]):
        score += pts["title_keyword"]
    if len(name) < NAME_SHORT:
        score += pts["short_name"]
    return int(score)


def completeness_points(lead: Mapping[str, Any], rules: Dict[str, Any]) -> int:
    # status always falls back to "new"; a malformed email still counts as present
    if all(clean_str(lead.get(f)) for f in ("name", "email", "company")):
        return int(rules["points"]["complete_lead"])
    return 0


def enterprise_combo_points(lead: Mapping[str, Any], rules: Dict[str, Any]) -> int:
    name = clean_str(lead.get("name"))
    domain = email_domain(lead.get("email"))
    if not name or not domain:
        return 0
    if _contains_any(name.lower(), rules["executive_titles"]) and domain in rules["enterprise_domains"]:
        return int(rules["points"]["enterprise_decision_maker"])
    return 0


RULE_GROUPS = (
    status_points,
    email_points,
    company_points,
    name_points,
    completeness_points,
    enterprise_combo_points,
)


def compute_score(lead: Union[BaseModel, Mapping[str, Any]], rules: Dict[str, Any]) -> int:
    record = to_record(lead)
    score = rules["points"]["base"]
    for group in RULE_GROUPS:
        score += group(record, rules)
    return max(1, min(100, int(round(score))))


def score_one(lead: Union[BaseModel, Mapping[str, Any]]) -> int:
    rules = load_rules()
    return compute_score(lead, rules)
