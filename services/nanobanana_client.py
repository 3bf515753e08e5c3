# services/nanobanana_client.py
import json
import logging
import os
from typing import List

import replicate

logger = logging.getLogger(__name__)

REPLICATE_TOKEN = os.getenv("REPLICATE_API_TOKEN")
IMPROVE_MODEL = os.getenv("IMPROVE_MODEL", "google/nano-banana")

IDENTITY_GUARD = (
    "keep same person identity, keep same face, preserve facial features, "
    "preserve skin tone, preserve gender, do not change age or bone structure"
)

DEFAULT_CHANGES = [
    "Enhanced skin clarity with improved texture and even tone",
    "Optimized lighting for a more flattering appearance",
    "Refined hair styling for better face framing",
    "Subtle under-eye brightening",
    "Improved overall color balance and warmth",
]


def build_prompt(changes: List[str], guidance: str = "") -> str:
    core = f"{IDENTITY_GUARD}. realistic photo, no beauty filter. {'. '.join(changes)}. {guidance}"
    return " ".join(core.split())[:400]


_URL_KEYS = ("image", "url", "output_url")


def _pick_url(res) -> str:
    """Output image URL from the shapes replicate models return."""
    if isinstance(res, (list, tuple)):
        return _pick_url(res[0]) if res else ""
    if isinstance(res, str):
        return res
    if isinstance(res, dict):
        return next((res[k] for k in _URL_KEYS if res.get(k)), "")
    # FileOutput objects from newer replicate clients
    url = getattr(res, "url", None)
    return url if isinstance(url, str) else ""


def improve_photo(image_url: str, prompt: str) -> str:
    """Best-version render of the photo from a `build_prompt` prompt; returns the output image URL."""
    client = replicate.Client(api_token=REPLICATE_TOKEN)
    base = {"prompt": prompt, "strength": 0.25}

    candidates = [
        {"image": image_url, **base},
        {"input_image": image_url, **base},
    ]

    last_err = None
    for payload in candidates:
        try:
            out = client.run(IMPROVE_MODEL, input=payload)
            url = _pick_url(out)
            if url:
                return url
            last_err = RuntimeError(f"no url in output: {json.dumps(out, default=str)[:300]}")
        except Exception as e:
            logger.warning("image model call failed: %s", e)
            last_err = e
            continue
    raise RuntimeError(f"NanoBanana failed: {last_err}")
