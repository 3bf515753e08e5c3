import logging
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from schemas import (
    AnalysisDraft,
    AnalysisResponse,
    ImprovementDelta,
    ImprovementLever,
    PhotoQuality,
    PotentialBreakdown,
    RequestContext,
    Safety,
    ScoreEnvelope,
    as_list,
)
from scoring.config import DEFAULT_POTENTIAL, PotentialConfig
from scoring.errors import SchemaViolation
from scoring.levers import registry_for
from scoring.potential import PotentialResult, compute_potential

logger = logging.getLogger(__name__)

DEFAULT_CURRENT = 5.5

SCORING_CONTEXT = (
    "We use honest calibration: 5.5 is average, most people score 4.5-6.5. "
    "A 7+ is notably above average."
)
DISCLAIMERS = {
    "face": "Scores reflect aesthetic guidelines, not personal worth. Beauty is subjective.",
    "body": "Estimates vary with lighting/angle and clothing. This is guidance, not medical advice.",
}


def _dict_or_none(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def normalize(raw: Dict[str, Any]) -> AnalysisDraft:
    """Coerce parsed model output into an AnalysisDraft, applying per-field defaults.

    Deltas that cannot be read are skipped with a diagnostic; anything else
    that does not fit raises SchemaViolation.
    """
    diagnostics = []
    potential = _dict_or_none(raw.get("potential")) or {}
    deltas = []
    for item in as_list(potential.get("deltas")):
        try:
            deltas.append(ImprovementDelta.model_validate(item))
        except ValidationError as e:
            msg = f"skipped unreadable improvement delta ({e.error_count()} errors): {str(item)[:80]}"
            logger.warning(msg)
            diagnostics.append(msg)

    timeline = potential.get("timelineToFullPotential")
    data = {
        "photoQuality": _dict_or_none(raw.get("photoQuality")),
        "overall": _dict_or_none(raw.get("overall")) or {},
        "potentialRange": _dict_or_none(raw.get("potentialRange")),
        "deltas": deltas,
        "timelineToFullPotential": "" if timeline is None else str(timeline),
        "features": as_list(raw.get("features")),
        "harmony": _dict_or_none(raw.get("harmony")),
        "symmetry": _dict_or_none(raw.get("symmetry")),
        "hair": _dict_or_none(raw.get("hair")),
        "harmonyIndex": _dict_or_none(raw.get("harmonyIndex")),
        "safety": _dict_or_none(raw.get("safety")) or {},
        "diagnostics": diagnostics,
    }
    try:
        return AnalysisDraft.model_validate(data)
    except ValidationError as e:
        raise SchemaViolation(f"model output does not fit the analysis schema: {e}") from e


def _scrub_premium_depth(draft: AnalysisDraft) -> AnalysisDraft:
    features = [
        f.model_copy(update={"subFeatures": [], "fixes": [x for x in f.fixes if not x.is_procedural]})
        for f in draft.features
    ]
    overall = draft.overall.model_copy(update={"ceilingScore10": None})
    return draft.model_copy(update={"features": features, "overall": overall})


def assemble(
    draft: Union[AnalysisDraft, Dict[str, Any]],
    context: RequestContext,
    potential: Optional[PotentialResult] = None,
    registry: Optional[Mapping[str, ImprovementLever]] = None,
    config: PotentialConfig = DEFAULT_POTENTIAL,
) -> AnalysisResponse:
    """Build the validated response; tier comes from `context`, never from the model."""
    if not isinstance(draft, AnalysisDraft):
        draft = normalize(draft)
    registry = registry if registry is not None else registry_for(context.kind)

    if not context.is_premium:
        draft = _scrub_premium_depth(draft)

    if potential is None:
        current = draft.overall.currentScore10
        potential = compute_potential(
            DEFAULT_CURRENT if current is None else current,
            draft.deltas,
            registry,
            config,
            draft.potentialRange,
        )

    ceiling = draft.overall.ceilingScore10
    if ceiling is not None:
        ceiling = min(config.max_score, max(ceiling, potential.potential))

    safety = draft.safety
    tone = safety.get("tone") or "neutral"
    if isinstance(tone, str):
        tone = tone.strip().lower()
    try:
        return AnalysisResponse(
            kind=context.kind,
            photoQuality=draft.photoQuality or PhotoQuality(),
            overall=ScoreEnvelope(
                currentScore10=potential.current,
                potentialScore10=potential.potential,
                ceilingScore10=ceiling,
                confidence=draft.overall.confidence,
                summary=draft.overall.summary,
                calibrationNote=draft.overall.calibrationNote or SCORING_CONTEXT,
            ),
            potentialRange=potential.range,
            potential=PotentialBreakdown(
                totalPossibleGain=potential.total_gain,
                deltas=potential.retained,
                top3Levers=potential.top3,
                timelineToFullPotential=draft.timelineToFullPotential,
            ),
            features=draft.features,
            harmony=draft.harmony,
            symmetry=draft.symmetry,
            hair=draft.hair,
            harmonyIndex=draft.harmonyIndex,
            safety=Safety(
                disclaimer=safety.get("disclaimer") or DISCLAIMERS[context.kind],
                tone=tone,
                scoringContext=safety.get("scoringContext") or SCORING_CONTEXT,
            ),
            tier=context.tier,
            diagnostics=draft.diagnostics + potential.dropped,
        )
    except ValidationError as e:
        raise SchemaViolation(f"analysis response failed validation: {e}") from e
