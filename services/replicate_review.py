# services/replicate_review.py
import os
from typing import Optional

import replicate

from prompts import APPEARANCE_PROMPT, ENHANCEMENT_PROMPT, FACE_CHECK_PROMPT, build_user_prompt
from schemas import AppearanceProfile, EnhancementPlan, FaceCheck
from scoring.upstream import strict_json_loads
from services.openai_review import HELPER_SYSTEM, SYSTEM_PROMPTS

REPLICATE_TOKEN = os.getenv("REPLICATE_API_TOKEN")
REVIEW_MODEL = os.getenv("REPLICATE_REVIEW_MODEL", "meta/meta-llama-3.2-11b-vision-instruct")


def _text(out) -> str:
    return "".join(map(str, out)) if isinstance(out, list) else str(out)


def _ask(system_prompt: str, user_prompt: str, image_url: str) -> str:
    client = replicate.Client(api_token=REPLICATE_TOKEN)

    # Attempt 1: messages schema (one image; these models take a single photo)
    try:
        out = client.run(
            REVIEW_MODEL,
            input={
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": [
                        {"type": "input_text", "text": user_prompt},
                        {"type": "input_image", "image": image_url},
                    ]},
                ]
            },
        )
        return _text(out)
    except Exception as first_err:
        # Attempt 2: prompt + image fields
        try:
            out = client.run(
                REVIEW_MODEL,
                input={"prompt": f"{system_prompt}\n\n{user_prompt}\n\nReturn ONLY JSON.", "image": image_url},
            )
            return _text(out)
        except Exception as e:
            raise RuntimeError(f"Replicate review failed: {e} (first attempt: {first_err})") from e


def review_photos(
    kind: str,
    front_url: str,
    side_url: Optional[str] = None,
    is_premium: bool = False,
    gender: Optional[str] = None,
    appearance: Optional[AppearanceProfile] = None,
) -> str:
    user_prompt = build_user_prompt(is_premium, side_url is not None, gender, appearance)
    return _ask(SYSTEM_PROMPTS[kind].strip(), user_prompt, front_url)


def check_face(front_url: str) -> FaceCheck:
    text = _ask(HELPER_SYSTEM, FACE_CHECK_PROMPT.strip(), front_url)
    return FaceCheck.model_validate(strict_json_loads(text))


def infer_appearance(front_url: str) -> AppearanceProfile:
    data = strict_json_loads(_ask(HELPER_SYSTEM, APPEARANCE_PROMPT.strip(), front_url))
    return AppearanceProfile.model_validate(data.get("appearanceProfile", data))


def enhancement_plan(image_url: str) -> EnhancementPlan:
    text = _ask(HELPER_SYSTEM, ENHANCEMENT_PROMPT.strip(), image_url)
    return EnhancementPlan.model_validate(strict_json_loads(text))
