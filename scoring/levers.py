from types import MappingProxyType
from typing import Mapping, Optional

from schemas import ImprovementLever


def _registry(*levers: ImprovementLever) -> Mapping[str, ImprovementLever]:
    return MappingProxyType({lever.id: lever for lever in levers})


# Realistic score deltas per lever, in points on the 0-10 scale
FACE_LEVERS = _registry(
    ImprovementLever(id="skin", label="Skin", min_delta=0.2, max_delta=1.0),
    ImprovementLever(id="hair", label="Hair", min_delta=0.2, max_delta=0.8),
    ImprovementLever(id="under_eye", label="Under-eye", min_delta=0.1, max_delta=0.6),
    ImprovementLever(id="brows", label="Brow grooming", min_delta=0.1, max_delta=0.5),
    ImprovementLever(id="body_fat", label="Facial leanness", min_delta=0.2, max_delta=0.8),
    ImprovementLever(id="posture", label="Posture", min_delta=0.1, max_delta=0.4),
    ImprovementLever(id="nose", label="Nose contouring", min_delta=0.05, max_delta=0.2),
)

BODY_LEVERS = _registry(
    ImprovementLever(id="body_fat", label="Body fat reduction", min_delta=0.4, max_delta=1.0),
    ImprovementLever(id="shoulders", label="Shoulder development", min_delta=0.3, max_delta=0.8),
    ImprovementLever(id="lats", label="Lat development", min_delta=0.3, max_delta=0.8),
    ImprovementLever(id="posture", label="Posture", min_delta=0.2, max_delta=0.5),
    ImprovementLever(id="core", label="Core training", min_delta=0.1, max_delta=0.4),
)

_REGISTRIES = MappingProxyType({"face": FACE_LEVERS, "body": BODY_LEVERS})


def registry_for(kind: str) -> Mapping[str, ImprovementLever]:
    try:
        return _REGISTRIES[kind]
    except KeyError:
        raise ValueError(f"unknown analysis kind: {kind}")


def find_lever(lever_id: str, registry: Mapping[str, ImprovementLever] = FACE_LEVERS) -> Optional[ImprovementLever]:
    return registry.get(lever_id)
