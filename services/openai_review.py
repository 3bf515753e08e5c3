# services/openai_review.py
import logging
import os
from typing import List, Optional

from openai import OpenAI

from prompts import (
    APPEARANCE_PROMPT,
    BODY_SYSTEM_PROMPT,
    ENHANCEMENT_PROMPT,
    FACE_CHECK_PROMPT,
    FACE_SYSTEM_PROMPT,
    build_user_prompt,
)
from schemas import AppearanceProfile, EnhancementPlan, FaceCheck
from scoring.upstream import strict_json_loads

logger = logging.getLogger(__name__)

SYSTEM_PROMPTS = {"face": FACE_SYSTEM_PROMPT, "body": BODY_SYSTEM_PROMPT}
HELPER_SYSTEM = "You inspect photos and answer with strict JSON only."


def _client() -> OpenAI:
    key = os.getenv("OPENAI_API_KEY", "")
    if not key:
        raise RuntimeError("OPENAI_API_KEY not set")
    return OpenAI(api_key=key)


def _call_openai(model: str, system: str, user: str, image_urls: List[str]) -> str:
    content = [{"type": "text", "text": user}]
    content += [{"type": "image_url", "image_url": {"url": url}} for url in image_urls]
    resp = _client().chat.completions.create(
        model=model,
        temperature=0,
        response_format={"type": "json_object"},
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": content},
        ],
    )
    return (resp.choices[0].message.content or "").strip()


def _ask(system: str, user: str, image_urls: List[str]) -> str:
    last_err = None
    for model in (os.getenv("REVIEW_MODEL", "gpt-4o"), "gpt-4o-mini"):
        try:
            return _call_openai(model, system, user, image_urls)
        except Exception as e:
            logger.warning("request to %s failed: %s", model, e)
            last_err = e
            continue
    raise RuntimeError(f"OpenAI review failed: {last_err}")


def review_photos(
    kind: str,
    front_url: str,
    side_url: Optional[str] = None,
    is_premium: bool = False,
    gender: Optional[str] = None,
    appearance: Optional[AppearanceProfile] = None,
) -> str:
    """Raw model text for a face/body analysis; parsing happens in the scoring core."""
    system = SYSTEM_PROMPTS[kind].strip()
    user = build_user_prompt(is_premium, side_url is not None, gender, appearance)
    image_urls = [front_url] + ([side_url] if side_url else [])
    return _ask(system, user, image_urls)


# Helpers below raise RuntimeError when the model is unreachable and
# ValueError when its answer cannot be read.
def check_face(front_url: str) -> FaceCheck:
    text = _ask(HELPER_SYSTEM, FACE_CHECK_PROMPT.strip(), [front_url])
    return FaceCheck.model_validate(strict_json_loads(text))


def infer_appearance(front_url: str) -> AppearanceProfile:
    data = strict_json_loads(_ask(HELPER_SYSTEM, APPEARANCE_PROMPT.strip(), [front_url]))
    return AppearanceProfile.model_validate(data.get("appearanceProfile", data))


def enhancement_plan(image_url: str) -> EnhancementPlan:
    text = _ask(HELPER_SYSTEM, ENHANCEMENT_PROMPT.strip(), [image_url])
    return EnhancementPlan.model_validate(strict_json_loads(text))
