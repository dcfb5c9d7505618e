"""
Tests for the Intent Analyzer.

Copyright (c) 2025 GenForge
"""

import pytest

from genforge.intent import (
    INTENT_PATTERNS,
    Analysis,
    Audience,
    Complexity,
    EntityType,
    IntentAnalyzer,
    analyze_request,
)


class TestIntentMatching:
    """Test intent and domain detection."""

    def setup_method(self):
        self.analyzer = IntentAnalyzer()

    def test_saas_request(self):
        """Test a SaaS request is matched with its pattern weight."""
        analysis = self.analyzer.analyze("SaaS dashboard with analytics and billing")

        assert analysis.intent == "build_saas_application"
        assert analysis.domain == "saas"
        assert analysis.confidence == 0.94

    def test_ecommerce_request(self):
        """Test an online shop request."""
        analysis = self.analyzer.analyze("Online shop with cart and checkout")

        assert analysis.domain == "ecommerce"
        assert analysis.intent == "build_ecommerce_site"
        assert "shopping_cart" in analysis.key_features
        assert "payment_processing" in analysis.key_features

    def test_blog_request(self):
        """Test a personal blog request."""
        analysis = self.analyzer.analyze("Personal blog with comments and tags")

        assert analysis.domain == "blog"
        assert analysis.target_audience == Audience.PERSONAL
        assert analysis.key_features == ("comments_system", "content_categorization")

    def test_portfolio_request(self):
        """Test a portfolio request."""
        analysis = self.analyzer.analyze("Photography portfolio with a photo gallery")

        assert analysis.domain == "portfolio"
        assert "media_gallery" in analysis.key_features

    def test_overlap_prefers_higher_weight(self):
        """Test the strictly higher weight wins when several patterns match."""
        analysis = self.analyzer.analyze("blog with an analytics dashboard")

        assert analysis.domain == "saas"
        assert analysis.confidence == 0.94

    def test_no_match_is_default(self):
        """Test an unmatched request gets the default analysis."""
        analysis = self.analyzer.analyze("something nice for my grandmother")

        assert analysis.intent == "build_web_application"
        assert analysis.domain == "generic"
        assert analysis.confidence == 0.3

    def test_weights_distinct_and_capped(self):
        """Test pattern weights never tie and stay below the cap."""
        weights = [row.weight for row in INTENT_PATTERNS]

        assert len(set(weights)) == len(weights)
        assert all(w <= 0.95 for w in weights)

    def test_no_enterprise_domain(self):
        """Test no pattern produces an enterprise domain."""
        assert all(row.domain != "enterprise" for row in INTENT_PATTERNS)

        analysis = self.analyzer.analyze("enterprise multi-tenant platform with audit and compliance")
        assert analysis.domain != "enterprise"


class TestComplexityAndAudience:
    """Test complexity tiers and audience detection."""

    def setup_method(self):
        self.analyzer = IntentAnalyzer()

    def test_simple_contact_form(self):
        """Test a short request with a simple marker is simple."""
        analysis = self.analyzer.analyze("simple contact form, one page")

        assert analysis.complexity == Complexity.SIMPLE
        assert analysis.domain != "enterprise"

    def test_advanced_feature_is_complex(self):
        """Test advanced feature keywords make a request complex."""
        analysis = self.analyzer.analyze("store with payments and notifications")

        assert analysis.complexity == Complexity.COMPLEX

    def test_enterprise_marker(self):
        """Test enterprise markers override everything."""
        analysis = self.analyzer.analyze("simple tool with strong security")

        assert analysis.complexity == Complexity.ENTERPRISE

    def test_long_request_is_enterprise(self):
        """Test more than 100 words is enterprise."""
        text = " ".join(["word"] * 101)

        assert self.analyzer.analyze(text).complexity == Complexity.ENTERPRISE

    def test_default_is_medium(self):
        """Test requests without markers are medium."""
        analysis = self.analyzer.analyze("a recipe sharing website for friends")

        assert analysis.complexity == Complexity.MEDIUM
        assert analysis.target_audience == Audience.SMALL_BUSINESS

    def test_audience_order(self):
        """Test personal is checked before enterprise and developer."""
        assert self.analyzer.analyze("personal api playground").target_audience == Audience.PERSONAL
        assert self.analyzer.analyze("tool for the enterprise").target_audience == Audience.ENTERPRISE
        assert self.analyzer.analyze("docs site for developers").target_audience == Audience.DEVELOPER

    def test_next_tier(self):
        """Test complexity tiers ratchet and saturate."""
        assert Complexity.SIMPLE.next_tier() == Complexity.MEDIUM
        assert Complexity.COMPLEX.next_tier() == Complexity.ENTERPRISE
        assert Complexity.ENTERPRISE.next_tier() == Complexity.ENTERPRISE


class TestExtraction:
    """Test tech preferences, features and entities."""

    def setup_method(self):
        self.analyzer = IntentAnalyzer()

    def test_tech_preferences_in_table_order(self):
        """Test explicit technologies are listed in table order."""
        analysis = self.analyzer.analyze("Build it with postgres, tailwind and react")

        assert [p.value for p in analysis.tech_preferences] == ["react", "tailwindcss", "postgresql"]
        assert all(p.explicit for p in analysis.tech_preferences)
        assert analysis.has_explicit_tech is True
        assert analysis.tech_preferences[2].category == "database"

    def test_features_unique_and_ordered(self):
        """Test common features come before domain features, without repeats."""
        analysis = self.analyzer.analyze("SaaS with login, auth, dashboard and billing")

        assert analysis.key_features == ("authentication", "admin_dashboard", "subscription_management")

    def test_entities(self):
        """Test entities carry their extraction confidences."""
        analysis = self.analyzer.analyze("react dashboard")

        by_type = {}
        for entity in analysis.entities:
            by_type.setdefault(entity.type, []).append(entity)

        assert by_type[EntityType.FEATURE][0].confidence == 0.8
        assert by_type[EntityType.TECH][0].value == "react"
        assert by_type[EntityType.TECH][0].confidence == 0.9
        assert by_type[EntityType.COMPLEXITY][0].confidence == 0.7
        assert by_type[EntityType.TARGET][0].confidence == 0.6

    def test_snapshot_roundtrip(self):
        """Test the history snapshot rebuilds an equal analysis."""
        analysis = self.analyzer.analyze("Online shop built with nextjs and stripe checkout")

        assert Analysis.from_dict(analysis.to_dict()) == analysis


class TestRobustness:
    """Test the analyzer never raises."""

    @pytest.mark.parametrize("text", [None, 42, "", "   ", ["saas"], "!!!???", "é" * 5000])
    def test_unusable_input(self, text):
        """Test odd inputs yield a bounded analysis."""
        analysis = analyze_request(text)

        assert isinstance(analysis, Analysis)
        assert 0.0 <= analysis.confidence <= 1.0

    def test_non_string_is_default(self):
        """Test non-string input is the default analysis."""
        assert analyze_request(None) == Analysis()

    def test_internal_failure_is_default(self):
        """Test an internal failure degrades to the default analysis."""
        analyzer = IntentAnalyzer()

        class Broken:
            def search(self, text):
                raise RuntimeError("boom")

        from genforge.intent import IntentPattern
        analyzer.intent_patterns = [IntentPattern(Broken(), "x", "saas", 0.5)]

        assert analyzer.analyze("saas dashboard") == Analysis()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
