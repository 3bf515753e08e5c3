from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Confidence = Literal["low", "medium", "high"]
Difficulty = Literal["easy", "moderate", "difficult"]
Depth = Literal["free", "premium"]
AnalysisKind = Literal["face", "body"]

CONFIDENCE_RANK = {"low": 0, "medium": 1, "high": 2}

_DIFFICULTY_SYNONYMS = {"medium": "moderate", "hard": "difficult", "simple": "easy"}


def coerce_rating(value: Any) -> Optional[float]:
    """Numbers and numeric strings become a float clamped to 0-10.

    Anything else (missing, booleans, prose, NaN) is un-ratable and maps to None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or value != value:
        return None
    return max(0.0, min(10.0, float(value)))


def as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str) and not value.strip():
        return []
    return [value]


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


# --- Ratings ---------------------------------------------------------------
class Rating(BaseModel):
    """A 0-10 score, how far to trust it, and why."""

    rating10: Optional[float] = None
    confidence: Confidence = "medium"
    limitations: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _merge_limitation_aliases(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        notes = as_list(data.get("limitations"))
        for alias in ("photoLimitations", "photoLimitation"):
            for note in as_list(data.pop(alias, None)):
                if note not in notes:
                    notes.append(note)
        data["limitations"] = notes
        return data

    @field_validator("rating10", mode="before")
    @classmethod
    def _rating(cls, v):
        return coerce_rating(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        return "medium" if v is None else _lower(v)


class SubRating(Rating):
    name: str
    note: str = ""
    evidence: str = ""
    isStrength: bool = False


class Fix(BaseModel):
    title: str = ""
    type: str = "no_cost"  # no_cost | low_cost | procedural
    difficulty: Difficulty = "easy"
    timeline: str = ""
    expectedImpact: str = ""
    steps: List[str] = Field(default_factory=list)
    bucket: str = ""  # quickWins | shortTerm | mediumTerm | proOptions

    @model_validator(mode="before")
    @classmethod
    def _aliases(cls, data):
        if isinstance(data, dict) and "timeline" not in data and "timeToSeeChange" in data:
            data = dict(data)
            data["timeline"] = data.pop("timeToSeeChange")
        return data

    @field_validator("difficulty", mode="before")
    @classmethod
    def _difficulty(cls, v):
        v = _lower(v)
        return "easy" if v is None else _DIFFICULTY_SYNONYMS.get(v, v)

    @property
    def is_procedural(self) -> bool:
        return self.type == "procedural" or self.bucket == "proOptions"


class FeatureResult(Rating):
    key: str
    label: str = ""
    evidence: str = ""
    strengths: List[str] = Field(default_factory=list)
    holdingBack: List[str] = Field(default_factory=list)
    whyItMatters: str = ""
    subFeatures: List[SubRating] = Field(default_factory=list)
    fixes: List[Fix] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _feature_aliases(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        held = as_list(data.get("holdingBack"))
        for alias in ("whatLimitsIt", "imperfections"):
            for item in as_list(data.pop(alias, None)):
                if item not in held:
                    held.append(item)
        data["holdingBack"] = held
        for key in ("strengths", "subFeatures"):
            data[key] = as_list(data.get(key))
        # fixes arrive either as a flat list or bucketed by horizon
        fixes = data.get("fixes")
        if isinstance(fixes, dict):
            flat = []
            for bucket, items in fixes.items():
                for item in as_list(items):
                    if isinstance(item, dict):
                        item = {**item, "bucket": bucket}
                    flat.append(item)
            data["fixes"] = flat
        else:
            data["fixes"] = as_list(fixes)
        if not data.get("label") and isinstance(data.get("key"), str):
            data["label"] = data["key"].replace("_", " ").title()
        return data


class CompositeRating(Rating):
    """Harmony, symmetry and hair: a rating plus free-form detail passed through."""

    model_config = ConfigDict(extra="allow")

    evidence: str = ""
    notes: List[str] = Field(default_factory=list)


# --- Levers and potential --------------------------------------------------
class ImprovementLever(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    min_delta: float
    max_delta: float

    def allows(self, delta: float) -> bool:
        return self.min_delta <= delta <= self.max_delta


class ImprovementDelta(BaseModel):
    model_config = ConfigDict(frozen=True)

    lever: str
    delta: float
    currentIssue: str = ""
    potentialGain: str = ""
    timeline: str = ""
    difficulty: Difficulty = "moderate"
    steps: List[str] = Field(default_factory=list)

    @field_validator("lever", mode="before")
    @classmethod
    def _lever(cls, v):
        return _lower(v)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _difficulty(cls, v):
        v = _lower(v)
        return "moderate" if v is None else _DIFFICULTY_SYNONYMS.get(v, v)


class TopLever(BaseModel):
    lever: str
    label: str
    delta: float
    timeline: str = ""
    difficulty: Difficulty = "moderate"
    priority: int = Field(ge=1)


class PotentialRange(BaseModel):
    min: float = Field(ge=0, le=10)
    max: float = Field(ge=0, le=10)
    confidence: Confidence = "medium"
    note: str = ""


class PotentialBreakdown(BaseModel):
    totalPossibleGain: float = 0.0
    deltas: List[ImprovementDelta] = Field(default_factory=list)
    top3Levers: List[TopLever] = Field(default_factory=list)
    timelineToFullPotential: str = ""


class ScoreEnvelope(BaseModel):
    currentScore10: float = Field(ge=0, le=10)
    potentialScore10: float = Field(ge=0, le=10)
    ceilingScore10: Optional[float] = Field(default=None, ge=0, le=10)
    confidence: Confidence = "medium"
    summary: str = ""
    calibrationNote: str = ""

    @model_validator(mode="after")
    def _ordered(self):
        if self.potentialScore10 < self.currentScore10:
            raise ValueError("potentialScore10 must not be below currentScore10")
        if self.ceilingScore10 is not None and self.ceilingScore10 < self.potentialScore10:
            raise ValueError("ceilingScore10 must not be below potentialScore10")
        return self


# --- Input quality, safety, tier ------------------------------------------
class PhotoQuality(BaseModel):
    score: float = Field(default=50, ge=0, le=100)
    issues: List[str] = Field(default_factory=list)
    assessmentLimitations: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, v):
        try:
            return max(0.0, min(100.0, float(v)))
        except (TypeError, ValueError):
            return 50.0

    @field_validator("issues", "assessmentLimitations", mode="before")
    @classmethod
    def _lists(cls, v):
        return as_list(v)


class FaceCheck(BaseModel):
    hasFace: bool
    reason: str = ""

    @field_validator("reason", mode="before")
    @classmethod
    def _reason(cls, v):
        return "" if v is None else str(v)


class AgeRange(BaseModel):
    min: float = Field(ge=0)
    max: float = Field(ge=0)


class AppearanceProfile(BaseModel):
    """Visual presentation inferred from the front photo; used only to pick scoring weights."""

    presentation: Literal["male-presenting", "female-presenting", "ambiguous"] = "ambiguous"
    confidence: float = Field(default=0.3, ge=0, le=1)
    ageRange: Optional[AgeRange] = None
    ageConfidence: Optional[float] = Field(default=None, ge=0, le=1)
    dimorphismScore10: float = Field(default=5, ge=0, le=10)
    masculinityFemininity: Dict[str, float] = Field(
        default_factory=lambda: {"masculinity": 50, "femininity": 50}
    )
    photoLimitation: Optional[str] = None

    @field_validator("presentation", mode="before")
    @classmethod
    def _presentation(cls, v):
        return "ambiguous" if v is None else _lower(v)

    @classmethod
    def neutral(cls) -> "AppearanceProfile":
        return cls(photoLimitation="Could not reliably infer from photo")


class EnhancementPlan(BaseModel):
    changes: List[str] = Field(min_length=1)
    imagenPrompt: str = ""

    @field_validator("changes", mode="before")
    @classmethod
    def _changes(cls, v):
        return [str(c).strip() for c in as_list(v) if str(c).strip()]


class Safety(BaseModel):
    disclaimer: str
    tone: Literal["neutral", "constructive"] = "neutral"
    scoringContext: str


class Tier(BaseModel):
    isPremium: bool
    depth: Depth


class RequestContext(BaseModel):
    """What the caller knows about the request; never taken from model output."""

    kind: AnalysisKind = "face"
    is_premium: bool = False
    has_secondary_photo: bool = False
    angle_quality: Optional[Literal["good", "near_frontal"]] = None
    lighting_quality: Optional[Literal["even", "uneven"]] = None
    gender: Optional[Literal["male", "female"]] = None

    @property
    def tier(self) -> Tier:
        return Tier(isPremium=self.is_premium, depth="premium" if self.is_premium else "free")


# --- Draft (after boundary parsing) and final response ---------------------
class DraftOverall(BaseModel):
    currentScore10: Optional[float] = None
    potentialScore10: Optional[float] = None
    ceilingScore10: Optional[float] = None
    confidence: Confidence = "medium"
    summary: str = ""
    calibrationNote: str = ""

    @field_validator("currentScore10", "potentialScore10", "ceilingScore10", mode="before")
    @classmethod
    def _scores(cls, v):
        return coerce_rating(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        return "medium" if v is None else _lower(v)


class DraftRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    confidence: Confidence = "medium"
    note: str = ""

    @field_validator("min", "max", mode="before")
    @classmethod
    def _bounds(cls, v):
        return coerce_rating(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        return "medium" if v is None else _lower(v)


class AnalysisDraft(BaseModel):
    """Model output after boundary parsing and defaulting, before assembly."""

    photoQuality: Optional[PhotoQuality] = None
    overall: DraftOverall = Field(default_factory=DraftOverall)
    potentialRange: Optional[DraftRange] = None
    deltas: List[ImprovementDelta] = Field(default_factory=list)
    timelineToFullPotential: str = ""
    features: List[FeatureResult] = Field(default_factory=list)
    harmony: Optional[CompositeRating] = None
    symmetry: Optional[CompositeRating] = None
    hair: Optional[CompositeRating] = None
    harmonyIndex: Optional[Dict[str, Any]] = None
    safety: Dict[str, Any] = Field(default_factory=dict)
    diagnostics: List[str] = Field(default_factory=list)


class AnalysisResponse(BaseModel):
    kind: AnalysisKind = "face"
    photoQuality: PhotoQuality
    overall: ScoreEnvelope
    potentialRange: PotentialRange
    potential: PotentialBreakdown
    features: List[FeatureResult] = Field(min_length=1)
    harmony: Optional[CompositeRating] = None
    symmetry: Optional[CompositeRating] = None
    hair: Optional[CompositeRating] = None
    harmonyIndex: Optional[Dict[str, Any]] = None
    safety: Safety
    tier: Tier
    diagnostics: List[str] = Field(default_factory=list)
    appearanceProfile: Optional[AppearanceProfile] = None
    isFallback: bool = False

    @model_validator(mode="after")
    def _range_brackets_potential(self):
        current = self.overall.currentScore10
        potential = self.overall.potentialScore10
        rng = self.potentialRange
        if not (current <= rng.min <= potential <= rng.max <= 10):
            raise ValueError(
                f"potentialRange [{rng.min}, {rng.max}] inconsistent with "
                f"current {current} / potential {potential}"
            )
        return self
