"""
Tests for technology fingerprinting.
"""

from websec.scanner.analyzers.tech_detector import TechDetector, fingerprint
from websec.scanner.archetypes import FixedClassifier


def _names(technologies):
    return {t["name"] for t in technologies}


def test_fingerprint_markup_and_headers():
    body = '<script src="/js/jquery-3.7.1.min.js"></script><link href="/wp-content/themes/astra/style.css">'
    found = fingerprint(body, {"Server": "nginx/1.25.3", "X-Powered-By": "PHP/8.2.12"})
    assert _names(found) == {"jQuery", "WordPress", "Nginx", "PHP"}
    assert not any(t["outdated"] for t in found)


def test_outdated_versions_flagged():
    body = '<script src="/js/jquery-1.12.4.min.js"></script>'
    found = {t["name"]: t for t in fingerprint(body, {"server": "nginx/1.14.0"})}
    assert found["jQuery"]["outdated"] is True
    assert found["Nginx"]["outdated"] is True


def test_nothing_detected_is_neutral():
    result = TechDetector().evaluate("<html></html>", {})
    assert result.score == 50
    assert result.status == "unknown"
    assert result.recommendations == []


def test_score_deducts_risk_and_outdated():
    body = '<script src="/js/jquery-1.12.4.min.js"></script>'
    result = TechDetector().evaluate(body, {})
    # jQuery: medium risk (-10) and outdated (-15)
    assert result.score == 75
    assert result.status == "outdated"
    assert result.recommendations[0].title == "Update outdated technologies"
    assert result.recommendations[0].priority == "high"


def test_category_recommendations():
    body = (
        '<meta name="generator" content="WordPress 6.4">'
        '<script src="https://www.googletagmanager.com/gtag/js?id=G-1"></script>'
        '<script src="https://js.stripe.com/v3/"></script>'
    )
    result = TechDetector().evaluate(body, {})
    priorities = {r.title: r.priority for r in result.recommendations}
    assert priorities["Keep CMS and plugins updated"] == "medium"
    assert priorities["Review analytics and tracking"] == "low"
    assert priorities["Verify PCI DSS compliance"] == "medium"
    assert result.details["categories"]["Payment"] == ["Stripe"]


def test_confidence_grows_with_hits():
    found = fingerprint('<div data-reactroot></div><script src="react-dom.production.min.js"></script>', {})
    react = next(t for t in found if t["name"] == "React")
    assert react["confidence"] == 50


def test_modern_archetype_never_outdated():
    detector = TechDetector(classifier=FixedClassifier("modern"))
    for domain in ["a.com", "b.com", "c.com", "d.com", "e.com"]:
        result = detector.run(domain)
        assert result.details["source"] == "synthetic"
        assert result.details["outdatedCount"] == 0
        assert result.status == "current"


def test_live_mode_uses_probe():
    def fake_probe(domain, timeout):
        return {"body": '<div class="g-recaptcha"></div>', "headers": {"server": "cloudflare"}}

    result = TechDetector(live=True, probe=fake_probe).run("example.com")
    assert result.details["source"] == "live"
    assert _names(result.details["technologies"]) == {"reCAPTCHA", "Cloudflare"}
    assert result.score == 90
