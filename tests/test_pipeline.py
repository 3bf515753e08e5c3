"""End-to-end tests for the analysis pipeline and demo fallback."""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from schemas import PhotoQuality, RequestContext
from scoring.errors import MalformedUpstreamOutput, SchemaViolation
from scoring.fallback import DEMO_FACE_PAYLOAD, fallback_response
from scoring.pipeline import analyze

K = 6.0 / 8.05

INFLATED = {
    "photoQuality": {"score": 88, "issues": []},
    "overall": {"currentScore10": 8.0, "confidence": "high", "summary": "Strong features overall."},
    "potential": {
        "deltas": [
            {"lever": "skin", "delta": 0.8},
            {"lever": "hair", "delta": 0.6},
            {"lever": "posture", "delta": 0.3},
            {"lever": "nose", "delta": 1.5},
        ]
    },
    "features": [
        {"key": "skin", "rating10": 7.8, "confidence": "high"},
        {"key": "eye_area", "rating10": 8.1, "confidence": "high"},
        {"key": "chin", "rating10": 7.9, "confidence": "high",
         "subFeatures": [{"name": "Forward projection", "rating10": 8.0, "confidence": "high"}]},
        {"key": "jawline", "rating10": 8.4, "confidence": "high"},
    ],
    "harmony": {"rating10": 8.0, "confidence": "high"},
    "symmetry": {"rating10": 6.0, "confidence": "high"},
}


class TestAnalyze:
    """Test the full post-processing pipeline."""

    def test_inflated_output_calibrated(self):
        response = analyze(json.dumps(INFLATED), RequestContext(is_premium=True, has_secondary_photo=True))
        ratings = [f.rating10 for f in response.features]
        assert ratings == pytest.approx([5.5 + (r - 5.5) * K for r in (7.8, 8.1, 7.9, 8.4)])
        assert response.features[2].subFeatures[0].rating10 == pytest.approx(5.5 + 2.5 * K)
        assert response.overall.currentScore10 == pytest.approx(5.5 + 2.5 * K)
        assert response.harmony.rating10 == pytest.approx(5.5 + 2.5 * (6.0 / 8.0))
        assert response.symmetry.rating10 == 6.0

    def test_potential_from_validated_deltas(self):
        response = analyze(INFLATED, RequestContext(has_secondary_photo=True))
        current = response.overall.currentScore10
        assert response.overall.potentialScore10 == pytest.approx(current + 1.7)
        assert [t.lever for t in response.potential.top3Levers] == ["skin", "hair", "posture"]
        assert any("nose" in d for d in response.diagnostics)

    def test_missing_side_photo_annotated(self):
        response = analyze(INFLATED, RequestContext(has_secondary_photo=False, is_premium=True))
        chin = next(f for f in response.features if f.key == "chin")
        assert chin.confidence == "low"
        assert chin.limitations
        assert chin.subFeatures[0].confidence == "low"
        assert "side_missing" in response.photoQuality.issues

    def test_measured_quality_issues_merged(self):
        measured = PhotoQuality(score=60, issues=["low_resolution"])
        response = analyze(INFLATED, RequestContext(has_secondary_photo=True), measured_quality=measured)
        assert "low_resolution" in response.photoQuality.issues
        assert response.photoQuality.score == 88

    def test_reported_angle_issue_flags_symmetry(self):
        raw = dict(INFLATED, photoQuality={"score": 70, "issues": ["angle_distortion"]})
        response = analyze(raw, RequestContext(has_secondary_photo=True))
        assert response.symmetry.confidence == "low"

    def test_malformed_output_raises(self):
        with pytest.raises(MalformedUpstreamOutput):
            analyze("not json at all", RequestContext())

    def test_schema_violation_raises(self):
        raw = dict(INFLATED, safety={"tone": "brutal"})
        with pytest.raises(SchemaViolation):
            analyze(raw, RequestContext())


class TestFallback:
    """Test the demo result served when analysis fails."""

    def test_face_fallback(self):
        response = fallback_response(RequestContext(kind="face"))
        assert response.isFallback is True
        assert response.tier.depth == "free"
        assert len(response.features) == len(DEMO_FACE_PAYLOAD["features"])
        chin = next(f for f in response.features if f.key == "chin")
        assert chin.confidence == "low"

    def test_body_fallback(self):
        response = fallback_response(RequestContext(kind="body", is_premium=True, has_secondary_photo=True))
        assert response.kind == "body"
        assert response.tier.isPremium is True
        assert response.diagnostics == []

    def test_demo_is_not_compressed(self):
        response = fallback_response(RequestContext(has_secondary_photo=True))
        ratings = [f["rating10"] for f in DEMO_FACE_PAYLOAD["features"]]
        assert [f.rating10 for f in response.features] == ratings
