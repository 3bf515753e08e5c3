import logging
from typing import Any, Dict, Optional, Union

from schemas import AnalysisResponse, PhotoQuality, RequestContext
from scoring.assembler import DEFAULT_CURRENT, assemble, normalize
from scoring.calibration import (
    calibrate,
    calibrate_composite,
    calibrate_current_score,
    compression_factor,
    numeric_ratings,
)
from scoring.config import DEFAULT_CALIBRATION, DEFAULT_POTENTIAL, CalibrationConfig, PotentialConfig
from scoring.confidence import InputMeta, annotate
from scoring.levers import registry_for
from scoring.potential import compute_potential
from scoring.upstream import parse_upstream

logger = logging.getLogger(__name__)


def _merge_quality(reported: Optional[PhotoQuality], measured: Optional[PhotoQuality]) -> Optional[PhotoQuality]:
    if reported is None or measured is None:
        return reported or measured
    issues = reported.issues + [i for i in measured.issues if i not in reported.issues]
    return reported.model_copy(update={"issues": issues})


def analyze(
    payload: Union[str, bytes, Dict[str, Any]],
    context: RequestContext,
    calibration: CalibrationConfig = DEFAULT_CALIBRATION,
    potential_config: PotentialConfig = DEFAULT_POTENTIAL,
    measured_quality: Optional[PhotoQuality] = None,
) -> AnalysisResponse:
    """Run raw model output through calibration, potential, annotation and assembly.

    Raises MalformedUpstreamOutput or SchemaViolation; lever violations are
    reported in `diagnostics` instead.
    """
    draft = normalize(parse_upstream(payload))
    draft = draft.model_copy(
        update={"photoQuality": _merge_quality(draft.photoQuality, measured_quality)}
    )

    # calibration
    factor = compression_factor(numeric_ratings(draft.features), calibration)
    overall = draft.overall.model_copy(
        update={
            "currentScore10": calibrate_current_score(
                draft.overall.currentScore10, factor, calibration
            )
        }
    )
    draft = draft.model_copy(
        update={
            "features": calibrate(draft.features, calibration),
            "overall": overall,
            "harmony": calibrate_composite(draft.harmony, calibration),
            "symmetry": calibrate_composite(draft.symmetry, calibration),
            "hair": calibrate_composite(draft.hair, calibration),
        }
    )

    # potential
    registry = registry_for(context.kind)
    current = overall.currentScore10
    result = compute_potential(
        DEFAULT_CURRENT if current is None else current,
        draft.deltas,
        registry,
        potential_config,
        draft.potentialRange,
    )

    # confidence
    meta = InputMeta.from_request(
        context.has_secondary_photo,
        draft.photoQuality.issues if draft.photoQuality else (),
        context.angle_quality,
        context.lighting_quality,
    )
    draft = annotate(draft, meta, context.kind)

    response = assemble(draft, context, result, registry, potential_config)
    logger.info(
        "%s analysis complete - tier %s, current %.1f, potential %.1f, %d diagnostics",
        context.kind,
        response.tier.depth,
        response.overall.currentScore10,
        response.overall.potentialScore10,
        len(response.diagnostics),
    )
    return response
