FACE_SYSTEM_PROMPT = """
You are a facial aesthetics analyzer. Be honest and specific without being harsh.
Return ONLY valid JSON. No markdown, no extra text.

Scoring:
- Average is ~5.5/10; most people score 4.5-6.5. 8.0+ is rare.
- Different features must get different scores; cite visible evidence for each.
- currentScore10 is how they look now; potential deltas use these levers only:
  skin (+0.2 to +1.0), hair (+0.2 to +0.8), under_eye (+0.1 to +0.6),
  brows (+0.1 to +0.5), body_fat (+0.2 to +0.8), posture (+0.1 to +0.4),
  nose (+0.05 to +0.2)
- If the side photo is missing, chin/nose projection confidence is low.
- Frame weaknesses as "holdingBack", never as flaws.

Schema:
{
  "photoQuality": {"score": 0-100, "issues": ["side_missing", "angle_distortion", "inconsistent_lighting", ...],
                   "assessmentLimitations": ["string"]},
  "overall": {"currentScore10": number, "ceilingScore10": number | null, "confidence": "low|medium|high",
              "summary": "string", "calibrationNote": "string"},
  "potentialRange": {"min": number, "max": number, "confidence": "low|medium|high", "note": "string"},
  "potential": {
    "deltas": [{"lever": "string", "delta": number, "currentIssue": "string", "potentialGain": "string",
                "timeline": "string", "difficulty": "easy|moderate|difficult", "steps": ["string"]}],
    "timelineToFullPotential": "string"
  },
  "features": [{"key": "skin|eye_area|eyebrows|nose|lips|cheekbones|jawline|chin|neck_posture",
                "label": "string", "rating10": number, "confidence": "low|medium|high", "evidence": "string",
                "photoLimitations": ["string"], "strengths": ["string"], "holdingBack": ["string"],
                "subFeatures": [{"name": "string", "rating10": number, "note": "string", "isStrength": bool}],
                "fixes": [{"title": "string", "type": "no_cost|low_cost|procedural", "difficulty": "easy|moderate|difficult",
                           "timeline": "string", "expectedImpact": "string", "steps": ["string"]}]}],
  "harmony": {"rating10": number, "confidence": "low|medium|high", "evidence": "string", "notes": ["string"]},
  "harmonyIndex": {"score10": number, "components": {}},
  "symmetry": {"rating10": number, "confidence": "low|medium|high", "notes": ["string"]},
  "hair": {"rating10": number, "confidence": "low|medium|high", "notes": ["string"], "suggestions": ["string"]}
}
"""

BODY_SYSTEM_PROMPT = """
You are a physique aesthetics analyzer. Be honest and constructive; never shame genetics.
Return ONLY valid JSON. No markdown, no extra text.

Scoring:
- Average is ~5.5/10; most people score 4.5-6.5. 8.0+ needs visible muscle AND low body fat.
- Feature keys: leanness, v_taper, posture, upper_body_balance, lower_body_balance, core_presentation
- Potential deltas use these levers only: body_fat (+0.4 to +1.0), shoulders (+0.3 to +0.8),
  lats (+0.3 to +0.8), posture (+0.2 to +0.5), core (+0.1 to +0.4)

Schema: same as the face analysis (photoQuality, overall, potential, features) without
harmony, harmonyIndex, symmetry or hair.
"""

WEIGHT_CONTEXT = {
    "masculine_leaning": "Weight jawline definition, brow ridge and chin projection higher.",
    "feminine_leaning": "Weight skin quality, lip fullness and eye area higher.",
    "neutral": "Use balanced weights across all features.",
}

USER_PROMPT_TEMPLATE = """
Analyze the attached photo(s). Tier: {tier}.
Side photo: {side}.
Scoring weight context: {weights}
{depth}
Return JSON only.
"""

FREE_DEPTH = "Free tier: core features only, no subFeatures, 3-5 deltas, no procedural fixes, no ceilingScore10."
PREMIUM_DEPTH = "Premium tier: all features with 3-5 subFeatures each, 8-12 deltas, procedural options, ceilingScore10."


FACE_CHECK_PROMPT = """
Does this image contain a clear, real human face that can be analyzed?
hasFace is false for no face, animals, objects, cartoons or drawings, very blurry
photos, or a face that is completely obscured. Be strict.
Return ONLY JSON: {"hasFace": true|false, "reason": "brief explanation"}
"""

APPEARANCE_PROMPT = """
Infer the visual appearance profile of the face in this photo. This describes
presentation, not identity. If presentation is unclear use "ambiguous" with low
confidence; set ageRange to null when age is very uncertain.
Return ONLY JSON:
{"appearanceProfile": {"presentation": "male-presenting|female-presenting|ambiguous",
  "confidence": 0.0-1.0, "ageRange": {"min": number, "max": number} | null,
  "ageConfidence": 0.0-1.0 | null, "dimorphismScore10": 0-10,
  "masculinityFemininity": {"masculinity": 0-100, "femininity": 0-100},
  "photoLimitation": "string" | null}}
"""

ENHANCEMENT_PROMPT = """
Plan a realistic "best version" edit of this photo: grooming, skin clarity,
lighting and styling only. Never change identity, bone structure, age or gender.
Return ONLY JSON:
{"changes": ["3-6 short, specific changes"], "imagenPrompt": "one paragraph image-edit prompt"}
"""

# inferred presentation only drives weights at or above this confidence
APPEARANCE_CONFIDENCE_MIN = 0.65

_PRESENTATION_WEIGHTS = {
    "male-presenting": "masculine_leaning",
    "female-presenting": "feminine_leaning",
}


def weight_context(gender=None, appearance=None) -> str:
    """A manual `gender` wins; otherwise a confident appearance profile; otherwise neutral."""
    if gender == "male":
        return "masculine_leaning"
    if gender == "female":
        return "feminine_leaning"
    if appearance is not None and appearance.confidence >= APPEARANCE_CONFIDENCE_MIN:
        return _PRESENTATION_WEIGHTS.get(appearance.presentation, "neutral")
    return "neutral"


def build_user_prompt(is_premium: bool, has_side: bool, gender=None, appearance=None) -> str:
    return USER_PROMPT_TEMPLATE.format(
        tier="premium" if is_premium else "free",
        side="YES" if has_side else "NO - mark projection as LOW confidence",
        weights=WEIGHT_CONTEXT[weight_context(gender, appearance)],
        depth=PREMIUM_DEPTH if is_premium else FREE_DEPTH,
    ).strip()
