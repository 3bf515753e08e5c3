from schemas import AnalysisResponse, RequestContext
from scoring.pipeline import analyze

DEMO_FACE_PAYLOAD = {
    "photoQuality": {"score": 82, "issues": [], "assessmentLimitations": []},
    "overall": {
        "currentScore10": 5.7,
        "confidence": "medium",
        "summary": (
            "Balanced proportions with a clear strength in the eye area. Skin texture "
            "and hair framing are the main things holding the overall score back."
        ),
    },
    "potential": {
        "deltas": [
            {
                "lever": "skin",
                "delta": 0.6,
                "currentIssue": "Uneven texture across the T-zone",
                "potentialGain": "Smoother, more even skin",
                "timeline": "8 weeks",
                "difficulty": "easy",
                "steps": ["Cleanse twice daily", "Daily SPF 30+", "Add a retinoid at night"],
            },
            {
                "lever": "hair",
                "delta": 0.5,
                "currentIssue": "Cut does not frame the face",
                "potentialGain": "Better face framing",
                "timeline": "2 weeks",
                "difficulty": "easy",
                "steps": ["Ask for a cut with more volume on top", "Use a matte styling product"],
            },
            {
                "lever": "under_eye",
                "delta": 0.3,
                "currentIssue": "Mild under-eye darkness",
                "potentialGain": "Fresher eye area",
                "timeline": "4 weeks",
                "difficulty": "moderate",
                "steps": ["Sleep 7-9 hours", "Caffeine eye serum in the morning"],
            },
            {
                "lever": "posture",
                "delta": 0.2,
                "currentIssue": "Slight forward head position",
                "potentialGain": "Cleaner neck and jaw line",
                "timeline": "12 weeks",
                "difficulty": "moderate",
                "steps": ["Chin tucks 3x10 daily", "Raise screen to eye level"],
            },
        ],
        "timelineToFullPotential": "8-12 weeks with consistent effort",
    },
    "features": [
        {"key": "skin", "label": "Skin Quality", "rating10": 5.8, "confidence": "high",
         "strengths": ["Even tone"], "holdingBack": ["Visible texture in the T-zone"]},
        {"key": "eye_area", "label": "Eye Area", "rating10": 6.4, "confidence": "high",
         "strengths": ["Good eye shape"], "holdingBack": ["Mild under-eye darkness"]},
        {"key": "nose", "label": "Nose", "rating10": 5.6, "confidence": "medium",
         "strengths": ["Proportionate to face width"], "holdingBack": []},
        {"key": "lips", "label": "Lips", "rating10": 6.1, "confidence": "high",
         "strengths": ["Defined cupid's bow"], "holdingBack": ["Minor dryness"]},
        {"key": "cheekbones", "label": "Cheekbones", "rating10": 5.2, "confidence": "medium",
         "strengths": [], "holdingBack": ["Soft mid-face contour"]},
        {"key": "jawline", "label": "Jawline", "rating10": 4.9, "confidence": "medium",
         "strengths": [], "holdingBack": ["Limited definition at the gonial angle"]},
        {"key": "chin", "label": "Chin", "rating10": 5.5, "confidence": "medium",
         "subFeatures": [
             {"name": "Forward projection", "rating10": 5.2, "note": "Hard to judge from the front"},
             {"name": "Height", "rating10": 5.8, "note": "In proportion with the lower third"},
         ]},
    ],
    "harmony": {"rating10": 5.9, "confidence": "medium", "notes": ["Facial thirds close to even"]},
    "symmetry": {"rating10": 6.2, "confidence": "medium", "notes": ["Minor brow height difference"]},
    "hair": {"rating10": 5.4, "confidence": "high", "notes": [], "suggestions": ["More volume on top"]},
}

DEMO_BODY_PAYLOAD = {
    "photoQuality": {"score": 78, "issues": []},
    "overall": {
        "currentScore10": 5.3,
        "confidence": "medium",
        "summary": "Solid lower body base; body fat and shoulder width are the biggest levers.",
    },
    "potential": {
        "deltas": [
            {"lever": "body_fat", "delta": 0.7, "timeline": "12 weeks", "difficulty": "moderate",
             "steps": ["Moderate caloric deficit", "1.6 g/kg protein daily"]},
            {"lever": "shoulders", "delta": 0.4, "timeline": "12 weeks", "difficulty": "moderate",
             "steps": ["Lateral raises 3x/week", "Overhead press progression"]},
            {"lever": "posture", "delta": 0.3, "timeline": "6 weeks", "difficulty": "easy",
             "steps": ["Face pulls", "Thoracic extension drills"]},
            {"lever": "core", "delta": 0.2, "timeline": "8 weeks", "difficulty": "easy",
             "steps": ["Planks and dead bugs 3x/week"]},
        ],
        "timelineToFullPotential": "12-16 weeks",
    },
    "features": [
        {"key": "leanness", "label": "Leanness", "rating10": 5.1, "confidence": "medium"},
        {"key": "v_taper", "label": "V-Taper", "rating10": 5.4, "confidence": "medium"},
        {"key": "posture", "label": "Posture", "rating10": 4.8, "confidence": "medium"},
        {"key": "upper_body_balance", "label": "Upper Body Balance", "rating10": 5.6, "confidence": "medium"},
        {"key": "lower_body_balance", "label": "Lower Body Balance", "rating10": 5.9, "confidence": "medium"},
        {"key": "core_presentation", "label": "Core Presentation", "rating10": 5.0, "confidence": "medium"},
    ],
}

_DEMO_PAYLOADS = {"face": DEMO_FACE_PAYLOAD, "body": DEMO_BODY_PAYLOAD}


def fallback_response(context: RequestContext) -> AnalysisResponse:
    """Deterministic demonstration result, shaped by the caller's tier and inputs."""
    response = analyze(_DEMO_PAYLOADS[context.kind], context)
    return response.model_copy(update={"isFallback": True})
