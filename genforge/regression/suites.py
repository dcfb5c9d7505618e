"""
Built-in scenario suites.

Each case pairs a request prompt with the domain, features and minimum
score a generated application is expected to reach.

Copyright (c) 2025 GenForge
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple


class CaseKind(str, Enum):
    DOMAIN = "domain"
    COMPLEXITY = "complexity"
    FEATURES = "features"
    REGRESSION = "regression"


@dataclass(frozen=True)
class ScenarioCase:
    """One request and the expectations its artifact must meet."""
    name: str
    kind: CaseKind
    prompt: str
    expected_domain: str
    expected_features: Tuple[str, ...] = ()
    min_score: int = 70


@dataclass
class ScenarioSuite:
    name: str
    description: str
    cases: List[ScenarioCase] = field(default_factory=list)


BUILTIN_SUITES: List[ScenarioSuite] = [
    ScenarioSuite(
        name="Domain Coverage",
        description="Coverage of each supported application domain",
        cases=[
            ScenarioCase(
                name="Simple SaaS dashboard",
                kind=CaseKind.DOMAIN,
                prompt="Create a simple SaaS dashboard with user metrics",
                expected_domain="saas",
                expected_features=("dashboard", "metrics", "authentication"),
                min_score=75,
            ),
            ScenarioCase(
                name="E-commerce store",
                kind=CaseKind.DOMAIN,
                prompt="Online store with a shopping cart and payments",
                expected_domain="ecommerce",
                expected_features=("shopping_cart", "payment", "products"),
                min_score=75,
            ),
            ScenarioCase(
                name="Personal blog",
                kind=CaseKind.DOMAIN,
                prompt="Personal blog with articles and comments",
                expected_domain="blog",
                expected_features=("articles", "comments", "seo"),
                min_score=70,
            ),
            ScenarioCase(
                name="Creative portfolio",
                kind=CaseKind.DOMAIN,
                prompt="Creative portfolio with a gallery and a contact form",
                expected_domain="portfolio",
                expected_features=("gallery", "contact", "showcase"),
                min_score=70,
            ),
        ],
    ),
    ScenarioSuite(
        name="Complexity Levels",
        description="Simple, medium and complex requests",
        cases=[
            ScenarioCase(
                name="Simple application",
                kind=CaseKind.COMPLEXITY,
                prompt="Simple basic todo list application",
                expected_domain="app",
                expected_features=("basic_crud",),
                min_score=80,
            ),
            ScenarioCase(
                name="Medium application",
                kind=CaseKind.COMPLEXITY,
                prompt="Project management application with teams and tasks",
                expected_domain="saas",
                expected_features=("teams", "tasks", "dashboard"),
                min_score=75,
            ),
            ScenarioCase(
                name="Complex application",
                kind=CaseKind.COMPLEXITY,
                prompt="E-learning platform with courses, quizzes, certification and analytics",
                expected_domain="saas",
                expected_features=("courses", "quizzes", "analytics", "certification"),
                min_score=65,
            ),
        ],
    ),
    ScenarioSuite(
        name="Feature Coverage",
        description="Specific cross-cutting features",
        cases=[
            ScenarioCase(
                name="Authentication and authorization",
                kind=CaseKind.FEATURES,
                prompt="Application with complete authentication and user roles",
                expected_domain="saas",
                expected_features=("authentication", "authorization", "roles"),
                min_score=70,
            ),
            ScenarioCase(
                name="Real-time features",
                kind=CaseKind.FEATURES,
                prompt="Chat application with real-time messages and notifications",
                expected_domain="saas",
                expected_features=("real_time", "chat", "notifications"),
                min_score=65,
            ),
            ScenarioCase(
                name="Data visualization",
                kind=CaseKind.FEATURES,
                prompt="Analytics dashboard with charts and data export",
                expected_domain="saas",
                expected_features=("charts", "analytics", "export"),
                min_score=70,
            ),
        ],
    ),
    ScenarioSuite(
        name="Regression Tests",
        description="Previously working bundles that must keep working",
        cases=[
            ScenarioCase(
                name="Analytics bundle",
                kind=CaseKind.REGRESSION,
                prompt="SaaS analytics application with the full dashboard component bundle",
                expected_domain="saas",
                expected_features=("DashboardContext", "AnalyticsContext", "MetricsCard"),
                min_score=85,
            ),
            ScenarioCase(
                name="Expert personalization",
                kind=CaseKind.REGRESSION,
                prompt="Dashboard for an experienced user with advanced features",
                expected_domain="saas",
                expected_features=("advanced_features", "intelligence"),
                min_score=80,
            ),
        ],
    ),
]


def suites_by_name(suites: List[ScenarioSuite]) -> Dict[str, ScenarioSuite]:
    return {suite.name: suite for suite in suites}
