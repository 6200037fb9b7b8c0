"""Static knowledge tables used by the heuristic extractors.

Keeping these as data rather than inline branches means the catalog can be
audited and extended without touching the scanning logic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from testplan.extraction.models import Category, ComponentType


# ---------------------------------------------------------------------------
# Canonical component families
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ComponentTemplate:
    """A canonical component synthesized when its keyword family is present."""

    family: str
    name: str
    type: ComponentType
    trigger: re.Pattern[str]
    dependencies: tuple[str, ...]
    interfaces: tuple[str, ...]
    business_rules: tuple[str, ...]

    @property
    def description(self) -> str:
        return f"System component for {self.name.lower()}"


_CLIENT_DEPENDENCIES = (
    "Backend API Gateway",
    "Authentication Service",
    "Content Delivery Network",
)
_CLIENT_INTERFACES = (
    "User interface components",
    "API integration layer",
    "State management interface",
)
_CLIENT_RULES = (
    "Must be responsive and accessible",
    "Must provide consistent user experience",
    "Must handle offline scenarios gracefully",
)

COMPONENT_CATALOG: tuple[ComponentTemplate, ...] = (
    ComponentTemplate(
        family="authentication",
        name="User Authentication System",
        type=ComponentType.SERVICE,
        trigger=re.compile(r"\b(?:users?|login|logins|account|accounts)\b", re.IGNORECASE),
        dependencies=("User Database", "Session Management Service", "Security Token Service"),
        interfaces=(
            "REST API for user login/logout",
            "Token validation endpoint",
            "User session management API",
        ),
        business_rules=(
            "Must enforce strong password policies",
            "Must implement secure session management",
            "Must comply with data privacy regulations",
        ),
    ),
    ComponentTemplate(
        family="recommendation",
        name="Recommendation Engine",
        type=ComponentType.SERVICE,
        trigger=re.compile(r"\b(?:recommend|suggest|predict)\w*", re.IGNORECASE),
        dependencies=("User Behavior Analytics", "Product Catalog Service", "Machine Learning Platform"),
        interfaces=(
            "Recommendation API endpoint",
            "User preference update API",
            "Product similarity API",
        ),
        business_rules=(
            "Must respect user privacy preferences",
            "Must provide explainable recommendations",
            "Must handle cold start scenarios",
        ),
    ),
    ComponentTemplate(
        family="notification",
        name="Notification Service",
        type=ComponentType.SERVICE,
        trigger=re.compile(r"\b(?:notification|alert|notify|notifies)\w*", re.IGNORECASE),
        dependencies=("Message Queue Service", "User Preference Service", "External Notification Providers"),
        interfaces=(
            "Send notification API",
            "Notification preference API",
            "Notification status API",
        ),
        business_rules=(
            "Must respect user notification preferences",
            "Must implement rate limiting to prevent spam",
            "Must provide opt-out mechanisms",
        ),
    ),
    ComponentTemplate(
        family="analytics",
        name="Data Analytics Platform",
        type=ComponentType.SERVICE,
        trigger=re.compile(r"\b(?:analy[sz]\w*|data|patterns?)\b", re.IGNORECASE),
        dependencies=("Data Collection Service", "Data Storage System", "Reporting Engine"),
        interfaces=(
            "Data ingestion API",
            "Analytics query API",
            "Report generation API",
        ),
        business_rules=(
            "Must anonymize personal data",
            "Must ensure data accuracy and integrity",
            "Must comply with data retention policies",
        ),
    ),
    ComponentTemplate(
        family="mobile",
        name="Mobile Application Interface",
        type=ComponentType.UI,
        trigger=re.compile(r"\b(?:mobile|apps?|ios|android)\b", re.IGNORECASE),
        dependencies=_CLIENT_DEPENDENCIES,
        interfaces=_CLIENT_INTERFACES,
        business_rules=_CLIENT_RULES,
    ),
    ComponentTemplate(
        family="web",
        name="Web Application Interface",
        type=ComponentType.UI,
        trigger=re.compile(r"\b(?:website|web|browsers?)\b", re.IGNORECASE),
        dependencies=_CLIENT_DEPENDENCIES,
        interfaces=_CLIENT_INTERFACES,
        business_rules=_CLIENT_RULES,
    ),
)


# ---------------------------------------------------------------------------
# Technical terms
# ---------------------------------------------------------------------------

# Matched case-insensitively on word boundaries; the first mention wins.
TECHNICAL_TERMS: tuple[str, ...] = (
    "machine learning",
    "AI",
    "artificial intelligence",
    "API",
    "database",
    "service",
    "algorithm",
    "model",
)


# ---------------------------------------------------------------------------
# Acceptance criteria templates
# ---------------------------------------------------------------------------

# (keyword, extra criterion) pairs appended to narrative feature criteria.
FEATURE_CRITERIA_EXTRAS: tuple[tuple[str, str], ...] = (
    ("predict", "Prediction accuracy must meet specified thresholds"),
    ("notification", "Notifications must be delivered in a timely manner"),
    ("voice", "Voice recognition must achieve acceptable accuracy rates"),
)

# Keyed on the first matching keyword group; the empty key is the fallback.
EXPLICIT_FEATURE_CRITERIA: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("timer",),
        (
            "User can set multiple timers simultaneously",
            "Timers provide audio and visual notifications when complete",
            "User can modify or cancel active timers",
            "System maintains timer accuracy within 1 second",
        ),
    ),
    (
        ("recipe",),
        (
            "System provides step-by-step recipe instructions",
            "User can search for recipes by ingredients or cuisine type",
            "Recipe instructions are clear and easy to follow",
            "System can scale recipe quantities based on serving size",
        ),
    ),
    (
        ("grocery", "shopping"),
        (
            "User can create and manage shopping lists",
            "System can suggest items based on recipes",
            "Shopping lists are accessible across devices",
            "User can check off completed items",
        ),
    ),
    (
        ("appliance", "device"),
        (
            "System can connect to and control connected devices",
            "Device status is accurately reflected in the system",
            "User can control devices through voice commands",
            "System handles device connectivity issues gracefully",
        ),
    ),
    (
        ("safety",),
        (
            "System provides timely safety alerts and reminders",
            "Safety information is accurate and up-to-date",
            "Alerts are prominent and attention-grabbing",
            "User can customize safety alert preferences",
        ),
    ),
    (
        (),
        (
            "Feature must be implemented as described",
            "Feature must be accessible through voice commands",
            "Feature must work reliably under normal conditions",
            "Feature must provide appropriate user feedback",
        ),
    ),
)

# Keyword -> category for explicit feature-list items.
EXPLICIT_FEATURE_CATEGORIES: tuple[tuple[tuple[str, ...], Category], ...] = (
    (("appliance", "control"), Category.INTEGRATION),
    (("safety", "alert"), Category.SECURITY),
    (("voice", "hands-free"), Category.UI_UX),
)

CAPABILITY_CRITERIA: tuple[str, ...] = (
    "System must implement the capability as described",
    "Feature must be accessible to authorized users",
    "System must handle the capability reliably under normal conditions",
)

CAPABILITY_CRITERIA_EXTRAS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "voice",
        (
            "Voice recognition must achieve acceptable accuracy",
            "System must handle various accents and speech patterns",
        ),
    ),
    (
        "recipe",
        (
            "Recipe information must be accurate and complete",
            "Cooking instructions must be clear and step-by-step",
        ),
    ),
    (
        "timer",
        (
            "Timer functionality must be precise and reliable",
            "Multiple timers must be supported simultaneously",
        ),
    ),
    (
        "notification",
        (
            "Notifications must be delivered promptly",
            "Users must be able to customize notification preferences",
        ),
    ),
)

LIST_ITEM_CRITERIA: tuple[str, ...] = (
    "Feature must be implemented as described",
    "Feature must be accessible to users",
    "Feature must work reliably",
)


def explicit_feature_criteria(feature: str) -> list[str]:
    """Return the criteria template whose keywords first match *feature*."""
    lower = feature.lower()
    for keywords, criteria in EXPLICIT_FEATURE_CRITERIA:
        if not keywords or any(keyword in lower for keyword in keywords):
            return list(criteria)
    return []


def explicit_feature_category(feature: str) -> Category:
    lower = feature.lower()
    for keywords, category in EXPLICIT_FEATURE_CATEGORIES:
        if any(keyword in lower for keyword in keywords):
            return category
    return Category.FUNCTIONAL


def capability_criteria(sentence: str) -> list[str]:
    """Base capability criteria plus any keyword-specific extras."""
    lower = sentence.lower()
    criteria = list(CAPABILITY_CRITERIA)
    for keyword, extras in CAPABILITY_CRITERIA_EXTRAS:
        if keyword in lower:
            criteria.extend(extras)
    return criteria
