import json
import os
from typing import Any, Dict, List, Optional, Tuple
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from .models import RulesModel


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = Field(default="gpt-3.5-turbo")
    AI_TEMPERATURE: float = Field(default=0.7)
    AI_MAX_TOKENS: int = Field(default=60)
    AI_TIMEOUT_SECONDS: float = Field(default=15.0)
    RULES_PATH: Optional[str] = None
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)


settings = Settings()


DEFAULT_RULES = {
    "status_points": {"new": 0, "contacted": 15, "converted": 30},
    "points": {
        "base": 50,
        "missing_email": -10,
        "top_tier_domain": 20,
        "good_tld": 10,
        "consumer_domain": -5,
        "business_tld": 5,
        "generic_local_part": -5,
        "personal_local_part": 5,
        "missing_company": -10,
        "legal_suffix": 8,
        "company_long": 5,
        "company_medium": 3,
        "company_short": -3,
        "industry_keyword": 7,
        "startup_keyword": 5,
        "missing_name": -10,
        "full_name": 5,
        "title_keyword": 10,
        "short_name": -3,
        "complete_lead": 5,
        "enterprise_decision_maker": 15,
    },
    "top_tier_domains": [
        "microsoft.com",
        "apple.com",
        "google.com",
        "amazon.com",
        "ibm.com",
        "oracle.com",
        "salesforce.com",
        "adobe.com",
        "intel.com",
        "cisco.com",
        "dell.com",
        "hp.com",
    ],
    "good_tlds": [".edu", ".gov", ".org", ".io"],
    "consumer_domains": [
        "gmail.com",
        "hotmail.com",
        "yahoo.com",
        "outlook.com",
        "aol.com",
        "icloud.com",
        "mail.com",
        "protonmail.com",
    ],
    "business_tlds": [".com", ".net", ".co"],
    "generic_local_parts": ["info", "contact", "hello", "admin", "sales", "support", "help"],
    "legal_suffixes": ["inc", "llc", "ltd", "corp", "limited", "gmbh", "incorporated", "corporation"],
    "industry_keywords": [
        "tech",
        "software",
        "finance",
        "financial",
        "invest",
        "capital",
        "health",
        "medical",
        "pharma",
        "insurance",
        "consulting",
        "enterprise",
        "solutions",
        "systems",
        "global",
    ],
    "startup_keywords": ["startup", "innovation", "technologies", "labs", "ai"],
    "title_keywords": [
        "ceo",
        "cto",
        "cfo",
        "coo",
        "president",
        "vp",
        "director",
        "head",
        "manager",
        "chief",
        "founder",
        "owner",
    ],
    "executive_titles": ["ceo", "cto", "cfo", "coo", "president", "vp", "director"],
    "enterprise_domains": ["microsoft.com", "apple.com", "google.com", "amazon.com"],
}


_CACHE: Dict[str, Tuple[float, Dict[str, Any]]] = {}


def _rules_path() -> str:
    if settings.RULES_PATH:
        return settings.RULES_PATH
    base = os.path.dirname(__file__)
    return os.path.join(base, "rules.json")


def ensure_rules_file() -> None:
    path = _rules_path()
    if not os.path.exists(path):
        with open(path, "w", encoding="utf-8") as f:
            json.dump(DEFAULT_RULES, f, indent=2)


def _check_terms(name: str, terms: List[str]) -> None:
    for term in terms:
        if not term or term != term.strip().lower():
            raise ValueError(f"{name} entries must be non-empty lowercase strings")


def validate_rules(data: Dict[str, Any]) -> RulesModel:
    model = RulesModel.model_validate(data)
    missing = set(DEFAULT_RULES["points"]) - set(model.points)
    if missing:
        raise ValueError("points is missing keys: " + ", ".join(sorted(missing)))
    for status in DEFAULT_RULES["status_points"]:
        if status not in model.status_points:
            raise ValueError(f"status_points must define '{status}'")
    for name, value in model.model_dump().items():
        if isinstance(value, list):
            _check_terms(name, value)
    return model


def load_rules() -> Dict[str, Any]:
    ensure_rules_file()
    path = _rules_path()
    mtime = os.path.getmtime(path)
    cached = _CACHE.get(path)
    if cached and cached[0] == mtime:
        return cached[1]
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    model = validate_rules(data)
    rules = model.model_dump()
    _CACHE[path] = (mtime, rules)
    return rules


def save_rules(data: Dict[str, Any]) -> Dict[str, Any]:
    model = validate_rules(data)
    path = _rules_path()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(model.model_dump(), f, indent=2)
    mtime = os.path.getmtime(path)
    _CACHE[path] = (mtime, model.model_dump())
    return model.model_dump()
