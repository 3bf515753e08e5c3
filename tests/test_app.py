"""Tests for the HTTP endpoints, with the vision and image models stubbed out."""

import io
import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

sys.path.insert(0, str(Path(__file__).parent.parent))

import app as app_module
from schemas import AppearanceProfile, EnhancementPlan, FaceCheck
from services.nanobanana_client import DEFAULT_CHANGES

MODEL_OUTPUT = {
    "overall": {"currentScore10": 8.0, "ceilingScore10": 9.0, "confidence": "high"},
    "potential": {"deltas": [{"lever": "skin", "delta": 0.5}, {"lever": "nose", "delta": 1.5}]},
    "features": [
        {"key": "skin", "rating10": 7.8},
        {"key": "chin", "rating10": 8.2, "subFeatures": [{"name": "Forward projection", "rating10": 8.0}]},
    ],
    "tier": {"isPremium": True, "depth": "premium"},
}


def jpeg(width=600, height=800):
    buf = io.BytesIO()
    Image.new("RGB", (width, height)).save(buf, format="JPEG")
    return buf.getvalue()


class FakeProvider:
    """Stands in for a review client module; records what the app asked for."""

    def __init__(self, output=None, has_face=True, appearance=None, plan=None):
        self.output = "```json\n" + json.dumps(MODEL_OUTPUT) + "\n```" if output is None else output
        self.has_face = has_face
        self.appearance = appearance
        self.plan = plan
        self.reviews = []

    def review_photos(self, kind, front_url, side_url=None, is_premium=False, gender=None, appearance=None):
        self.reviews.append({
            "kind": kind,
            "side": side_url is not None,
            "premium": is_premium,
            "gender": gender,
            "appearance": appearance,
        })
        if isinstance(self.output, Exception):
            raise self.output
        return self.output

    def check_face(self, front_url):
        if isinstance(self.has_face, Exception):
            raise self.has_face
        return FaceCheck(hasFace=self.has_face, reason="" if self.has_face else "This is a photo of a cat.")

    def infer_appearance(self, front_url):
        if self.appearance is None:
            raise ValueError("No valid JSON found in output")
        return self.appearance

    def enhancement_plan(self, image_url):
        if self.plan is None:
            raise RuntimeError("OpenAI review failed: down")
        return self.plan


@pytest.fixture
def client():
    return TestClient(app_module.app)


@pytest.fixture
def use_provider(monkeypatch):
    def install(provider):
        monkeypatch.setitem(app_module.PROVIDERS, "openai", provider)
        monkeypatch.setattr(app_module, "REVIEW_PROVIDER", "openai")
        return provider

    return install


def post_face(client, data=None, side=False):
    files = {"front": ("front.jpg", jpeg(), "image/jpeg")}
    if side:
        files["side"] = ("side.jpg", jpeg(), "image/jpeg")
    return client.post("/api/face/analyze", files=files, data=data or {})


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"


class TestAnalyzeEndpoints:
    """Test face/body analysis endpoints."""

    def test_face_free_tier(self, client, use_provider):
        provider = use_provider(FakeProvider())
        res = post_face(client)
        assert res.status_code == 200
        body = res.json()
        analysis = body["analysis"]
        assert analysis["tier"] == {"isPremium": False, "depth": "free"}
        assert analysis["overall"]["ceilingScore10"] is None
        assert analysis["isFallback"] is False
        chin = next(f for f in analysis["features"] if f["key"] == "chin")
        assert chin["confidence"] == "low"
        assert chin["subFeatures"] == []
        assert any("nose" in d for d in analysis["diagnostics"])
        assert any("Side photo" in w for w in body["warnings"])
        assert provider.reviews[0]["kind"] == "face"
        assert provider.reviews[0]["side"] is False
        assert provider.reviews[0]["premium"] is False

    def test_face_premium_with_side(self, client, use_provider):
        provider = use_provider(FakeProvider())
        res = post_face(client, data={"premium": "true", "gender": "female"}, side=True)
        analysis = res.json()["analysis"]
        assert analysis["tier"]["depth"] == "premium"
        assert analysis["overall"]["currentScore10"] < 8.0
        assert provider.reviews[0]["side"] is True
        assert provider.reviews[0]["gender"] == "female"

    def test_body(self, client, use_provider):
        provider = use_provider(FakeProvider(has_face=False))
        res = client.post("/api/body/analyze", files={"front": ("f.jpg", jpeg(), "image/jpeg")})
        assert res.status_code == 200
        analysis = res.json()["analysis"]
        assert analysis["kind"] == "body"
        assert analysis["appearanceProfile"] is None
        assert provider.reviews[0]["appearance"] is None

    def test_undecodable_front_rejected(self, client, use_provider):
        provider = use_provider(FakeProvider())
        res = client.post("/api/face/analyze", files={"front": ("f.jpg", b"nope", "image/jpeg")})
        assert res.status_code == 400
        assert provider.reviews == []

    def test_invalid_gender_rejected(self, client, use_provider):
        use_provider(FakeProvider())
        assert post_face(client, data={"gender": "x"}).status_code == 400

    def test_malformed_output_serves_fallback(self, client, use_provider):
        use_provider(FakeProvider(output="I can't help with that."))
        res = post_face(client)
        assert res.status_code == 200
        assert res.json()["analysis"]["isFallback"] is True

    def test_malformed_output_without_fallback(self, client, use_provider, monkeypatch):
        use_provider(FakeProvider(output="{}"))
        monkeypatch.setattr(app_module, "FALLBACK_ON_ERROR", False)
        res = post_face(client)
        assert res.status_code == 500
        assert "MalformedUpstreamOutput" in res.json()["detail"]

    def test_review_failure_without_fallback(self, client, use_provider, monkeypatch):
        use_provider(FakeProvider(output=RuntimeError("OpenAI review failed: timeout")))
        monkeypatch.setattr(app_module, "FALLBACK_ON_ERROR", False)
        assert post_face(client).status_code == 502


class TestFaceCheck:
    """Test rejecting photos without a face."""

    def test_no_face_rejected(self, client, use_provider):
        provider = use_provider(FakeProvider(has_face=False))
        res = post_face(client)
        assert res.status_code == 400
        detail = res.json()["detail"]
        assert detail["error"] == "No face detected"
        assert "cat" in detail["message"]
        assert detail["suggestion"] == app_module.NO_FACE_SUGGESTION
        assert provider.reviews == []

    def test_unreadable_check_lets_request_through(self, client, use_provider):
        provider = use_provider(FakeProvider(has_face=ValueError("No valid JSON found in output")))
        res = post_face(client)
        assert res.status_code == 200
        assert len(provider.reviews) == 1

    def test_unreachable_check_lets_request_through(self, client, use_provider):
        use_provider(FakeProvider(has_face=RuntimeError("OpenAI review failed: down")))
        assert post_face(client).status_code == 200


class TestAppearanceProfile:
    """Test appearance inference on face analysis."""

    def test_profile_attached_and_passed_to_review(self, client, use_provider):
        profile = AppearanceProfile(presentation="female-presenting", confidence=0.8, dimorphismScore10=6.5)
        provider = use_provider(FakeProvider(appearance=profile))
        analysis = post_face(client).json()["analysis"]
        assert analysis["appearanceProfile"]["presentation"] == "female-presenting"
        assert analysis["appearanceProfile"]["confidence"] == 0.8
        assert provider.reviews[0]["appearance"] == profile

    def test_failed_inference_uses_neutral_profile(self, client, use_provider):
        provider = use_provider(FakeProvider(appearance=None))
        analysis = post_face(client).json()["analysis"]
        assert analysis["appearanceProfile"]["presentation"] == "ambiguous"
        assert analysis["appearanceProfile"]["confidence"] == 0.3
        assert provider.reviews[0]["appearance"] == AppearanceProfile.neutral()

    def test_profile_kept_on_fallback(self, client, use_provider):
        profile = AppearanceProfile(presentation="male-presenting", confidence=0.9)
        use_provider(FakeProvider(output="not json", appearance=profile))
        analysis = post_face(client).json()["analysis"]
        assert analysis["isFallback"] is True
        assert analysis["appearanceProfile"]["presentation"] == "male-presenting"


class TestBlockingCalls:
    """Test that model, image and Pillow calls stay off the event loop."""

    def test_offloaded_to_threadpool(self, client, use_provider, monkeypatch):
        offloaded = []
        real = app_module.run_in_threadpool

        async def recording(func, *args, **kwargs):
            offloaded.append(func.__name__)
            return await real(func, *args, **kwargs)

        monkeypatch.setattr(app_module, "run_in_threadpool", recording)
        use_provider(FakeProvider())
        assert post_face(client).status_code == 200
        assert {"image_dimensions", "check_photos", "check_face", "infer_appearance", "review_photos"} <= set(offloaded)

        monkeypatch.setattr(app_module, "improve_photo", lambda url, prompt: "https://example.com/out.png")
        client.post("/api/best-version", files={"image": ("f.jpg", jpeg(), "image/jpeg")})
        assert "enhancement_plan" in offloaded
        assert "<lambda>" in offloaded


class TestBestVersion:
    """Test best-version endpoints."""

    def test_changes_from_model(self, client, use_provider, monkeypatch):
        plan = EnhancementPlan(changes=["Even out skin tone", "Tidy brows"], imagenPrompt="soft window light")
        use_provider(FakeProvider(plan=plan))
        prompts = []

        def fake_improve(url, prompt):
            prompts.append(prompt)
            return "https://example.com/out.png"

        monkeypatch.setattr(app_module, "improve_photo", fake_improve)
        body = client.post("/api/best-version", files={"image": ("f.jpg", jpeg(), "image/jpeg")}).json()
        assert body["changes"] == ["Even out skin tone", "Tidy brows"]
        assert "soft window light" in body["imagenPrompt"]
        assert "Tidy brows" in body["imagenPrompt"]
        assert prompts == [body["imagenPrompt"]]
        assert body["resultImageUrl"] == "https://example.com/out.png"
        assert body["debug"]["fallbackMode"] is False

    def test_explicit_changes_skip_model(self, client, use_provider, monkeypatch):
        use_provider(FakeProvider(plan=EnhancementPlan(changes=["unused"])))
        monkeypatch.setattr(app_module, "improve_photo", lambda url, prompt: "https://example.com/out.png")
        res = client.post(
            "/api/best-version",
            files={"image": ("f.jpg", jpeg(), "image/jpeg")},
            data={"changes": "Brighter skin\n\nNeater brows"},
        )
        assert res.json()["changes"] == ["Brighter skin", "Neater brows"]

    def test_plan_failure_uses_default_changes(self, client, use_provider, monkeypatch):
        use_provider(FakeProvider(plan=None))
        monkeypatch.setattr(app_module, "improve_photo", lambda url, prompt: "https://example.com/out.png")
        body = client.post("/api/best-version", files={"image": ("f.jpg", jpeg(), "image/jpeg")}).json()
        assert body["changes"] == DEFAULT_CHANGES
        assert body["imagenPrompt"]

    def test_generation_failure_returns_original(self, client, use_provider, monkeypatch):
        def boom(url, prompt):
            raise RuntimeError("NanoBanana failed")

        use_provider(FakeProvider(plan=None))
        monkeypatch.setattr(app_module, "improve_photo", boom)
        body = client.post("/api/best-version", files={"image": ("f.jpg", jpeg(), "image/jpeg")}).json()
        assert body["resultImageUrl"].startswith("data:image/jpeg;base64,")
        assert body["debug"]["fallbackMode"] is True

    def test_demo(self, client):
        body = client.post("/api/best-version/demo").json()
        assert body["debug"]["usedProvider"] == "demo"
        assert body["changes"] == DEFAULT_CHANGES
        assert body["imagenPrompt"]
