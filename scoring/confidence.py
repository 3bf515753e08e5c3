"""Confidence labels and limitation notes driven by input quality.

Only labels and text change here; numeric ratings are left exactly as they are.
Running `annotate` twice gives the same result as running it once.
"""

from typing import FrozenSet, Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from schemas import CONFIDENCE_RANK, AnalysisDraft, Confidence, PhotoQuality, Rating

Trigger = Literal["missing_secondary", "near_frontal", "uneven_lighting"]


class InputMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_secondary_photo: bool = True
    angle_quality: Literal["good", "near_frontal"] = "good"
    lighting_quality: Literal["even", "uneven"] = "even"

    @classmethod
    def from_request(
        cls,
        has_secondary_photo: bool,
        issues: Iterable[str] = (),
        angle_quality: Optional[str] = None,
        lighting_quality: Optional[str] = None,
    ) -> "InputMeta":
        """Fill angle/lighting from reported quality issues when the caller did not say."""
        issues = set(issues)
        if angle_quality is None:
            angle_quality = "near_frontal" if "angle_distortion" in issues else "good"
        if lighting_quality is None:
            lighting_quality = "uneven" if "inconsistent_lighting" in issues else "even"
        return cls(
            has_secondary_photo=has_secondary_photo,
            angle_quality=angle_quality,
            lighting_quality=lighting_quality,
        )


class ConfidenceRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    trigger: Trigger
    level: Confidence
    feature_keys: FrozenSet[str] = frozenset()
    sub_feature_match: Optional[str] = None
    composites: Tuple[str, ...] = ()
    note: str
    issue: str
    limitation: str = ""

    def fires(self, meta: InputMeta) -> bool:
        if self.trigger == "missing_secondary":
            return not meta.has_secondary_photo
        if self.trigger == "near_frontal":
            return meta.angle_quality == "near_frontal"
        return meta.lighting_quality == "uneven"


SIDE_MISSING_NOTE = "No side profile photo: projection and depth cannot be judged from a front view"
SELFIE_NOTE = "Selfie angle creates 10-15% distortion in symmetry measurements"
LIGHTING_NOTE = "Uneven lighting changes shading cues used to judge contour"

RULES = {
    "face": (
        ConfidenceRule(
            trigger="missing_secondary",
            level="low",
            feature_keys=frozenset({"chin", "chin_projection", "nose_projection", "nose_profile"}),
            sub_feature_match="projection",
            note=SIDE_MISSING_NOTE,
            issue="side_missing",
            limitation="Chin projection cannot be accurately assessed without side profile",
        ),
        ConfidenceRule(
            trigger="near_frontal",
            level="low",
            feature_keys=frozenset({"symmetry"}),
            composites=("symmetry",),
            note=SELFIE_NOTE,
            issue="angle_distortion",
            limitation="Symmetry is distorted by a close, near-frontal camera angle",
        ),
        ConfidenceRule(
            trigger="uneven_lighting",
            level="medium",
            feature_keys=frozenset({"cheekbones", "jawline"}),
            note=LIGHTING_NOTE,
            issue="inconsistent_lighting",
        ),
    ),
    "body": (
        ConfidenceRule(
            trigger="missing_secondary",
            level="low",
            feature_keys=frozenset({"posture"}),
            note="No side photo: posture profile cannot be judged from a front view",
            issue="side_missing",
            limitation="Posture alignment cannot be accurately assessed without side photo",
        ),
        ConfidenceRule(
            trigger="uneven_lighting",
            level="medium",
            feature_keys=frozenset({"leanness", "core_presentation"}),
            note="Uneven lighting changes how muscle definition reads",
            issue="inconsistent_lighting",
        ),
    ),
}


def normalize_key(key: str) -> str:
    return key.strip().lower().replace("-", "_").replace(" ", "_")


def downgrade(current: Confidence, level: Confidence) -> Confidence:
    return level if CONFIDENCE_RANK[level] < CONFIDENCE_RANK[current] else current


def _with_note(notes: List[str], note: str) -> List[str]:
    return notes if note in notes else notes + [note]


def _flag(rating: Rating, rule: ConfidenceRule) -> Rating:
    return rating.model_copy(
        update={
            "confidence": downgrade(rating.confidence, rule.level),
            "limitations": _with_note(rating.limitations, rule.note),
        }
    )


def _apply_rule(draft: AnalysisDraft, rule: ConfidenceRule) -> AnalysisDraft:
    features = []
    for feature in draft.features:
        if normalize_key(feature.key) in rule.feature_keys:
            feature = _flag(feature, rule)
        if rule.sub_feature_match:
            subs = [
                _flag(sub, rule) if rule.sub_feature_match in normalize_key(sub.name) else sub
                for sub in feature.subFeatures
            ]
            feature = feature.model_copy(update={"subFeatures": subs})
        features.append(feature)

    update = {"features": features}
    for name in rule.composites:
        composite = getattr(draft, name)
        if composite is not None:
            update[name] = _flag(composite, rule)

    quality = draft.photoQuality or PhotoQuality()
    issues = _with_note(quality.issues, rule.issue)
    limitations = quality.assessmentLimitations
    if rule.limitation:
        limitations = _with_note(limitations, rule.limitation)
    update["photoQuality"] = quality.model_copy(
        update={"issues": issues, "assessmentLimitations": limitations}
    )
    return draft.model_copy(update=update)


def annotate(draft: AnalysisDraft, meta: InputMeta, kind: str = "face") -> AnalysisDraft:
    for rule in RULES.get(kind, ()):
        if rule.fires(meta):
            draft = _apply_rule(draft, rule)
    return draft
