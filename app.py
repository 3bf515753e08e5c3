# app.py
import base64
import logging
import os
from typing import List, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

# scoring core: pure, request-scoped post-processing of model output
# services: the vision model clients and local photo checks
from schemas import AppearanceProfile, RequestContext
from scoring.config import CalibrationConfig
from scoring.errors import AnalysisError
from scoring.fallback import fallback_response
from scoring.pipeline import analyze
from services import openai_review, replicate_review
from services.nanobanana_client import DEFAULT_CHANGES, build_prompt, improve_photo
from services.photo_quality import check_photos, image_dimensions

REVIEW_PROVIDER = os.getenv("REVIEW_PROVIDER", "openai").lower()
FALLBACK_ON_ERROR = os.getenv("FALLBACK_ON_ERROR", "true").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CALIBRATION = CalibrationConfig.from_env()

# each provider exposes review_photos, check_face, infer_appearance, enhancement_plan
PROVIDERS = {
    "openai": openai_review,
    "replicate": replicate_review,
}

NO_FACE_SUGGESTION = "Please upload a clear, front-facing photo of a human face for analysis."

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("app")

app = FastAPI(title="Aesthetics analysis API")


# --- Helpers ---------------------------------------------------------------
def _data_url(data: bytes, content_type: Optional[str]) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type or 'image/jpeg'};base64,{encoded}"


def _provider():
    provider = PROVIDERS.get(REVIEW_PROVIDER)
    if provider is None:
        raise HTTPException(status_code=500, detail=f"Unsupported REVIEW_PROVIDER: {REVIEW_PROVIDER}")
    return provider


def _respond(response, warnings: List[str]) -> JSONResponse:
    return JSONResponse({"analysis": response.model_dump(mode="json"), "warnings": warnings})


async def _require_face(provider, front_url: str) -> None:
    """400 when the model says there is no face; an unusable check lets the request through."""
    try:
        check = await run_in_threadpool(provider.check_face, front_url)
    except (RuntimeError, ValueError) as e:
        logger.warning("face check unavailable, proceeding with analysis: %s", e)
        return
    if not check.hasFace:
        logger.info("no face detected: %s", check.reason)
        raise HTTPException(
            status_code=400,
            detail={
                "error": "No face detected",
                "message": f"This doesn't appear to be a face. {check.reason or 'Please upload a clear photo of a human face.'}",
                "suggestion": NO_FACE_SUGGESTION,
            },
        )


async def _appearance(provider, front_url: str) -> AppearanceProfile:
    try:
        profile = await run_in_threadpool(provider.infer_appearance, front_url)
    except (RuntimeError, ValueError) as e:
        logger.warning("appearance inference failed, using neutral weights: %s", e)
        return AppearanceProfile.neutral()
    logger.info("appearance: %s (confidence %.2f)", profile.presentation, profile.confidence)
    return profile


async def _run_analysis(
    kind: str,
    front: UploadFile,
    side: Optional[UploadFile],
    premium: bool,
    gender: Optional[str],
    angle: Optional[str],
    lighting: Optional[str],
) -> JSONResponse:
    front_bytes = await front.read()
    if not front_bytes:
        raise HTTPException(status_code=400, detail="Front image is required")
    if await run_in_threadpool(image_dimensions, front_bytes) is None:
        raise HTTPException(status_code=400, detail="Front image could not be decoded")
    side_bytes = (await side.read()) if side is not None else None

    try:
        ctx = RequestContext(
            kind=kind,
            is_premium=premium,
            has_secondary_photo=bool(side_bytes),
            angle_quality=angle or None,
            lighting_quality=lighting or None,
            gender=gender or None,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"invalid request: {e.errors()[0]['msg']}")

    logger.info(
        "analyzing %s - tier %s, side photo: %s", kind, ctx.tier.depth, ctx.has_secondary_photo
    )
    measured, warnings = await run_in_threadpool(check_photos, front_bytes, side_bytes)

    provider = _provider()
    front_url = _data_url(front_bytes, front.content_type)
    side_url = _data_url(side_bytes, side.content_type) if side_bytes else None

    appearance = None
    if kind == "face":
        await _require_face(provider, front_url)
        appearance = await _appearance(provider, front_url)

    try:
        raw = await run_in_threadpool(
            provider.review_photos,
            kind,
            front_url,
            side_url,
            is_premium=ctx.is_premium,
            gender=ctx.gender,
            appearance=appearance,
        )
    except Exception as e:
        if not FALLBACK_ON_ERROR:
            raise HTTPException(status_code=502, detail=f"review failed: {e}")
        logger.error("review failed, serving fallback result: %s", e)
        response = fallback_response(ctx)
    else:
        try:
            response = analyze(raw, ctx, calibration=CALIBRATION, measured_quality=measured)
        except AnalysisError as e:
            if not FALLBACK_ON_ERROR:
                raise HTTPException(status_code=500, detail=f"{type(e).__name__}: {e}")
            logger.error("%s from model output, serving fallback result: %s", type(e).__name__, e)
            response = fallback_response(ctx)

    if appearance is not None:
        response = response.model_copy(update={"appearanceProfile": appearance})
    return _respond(response, warnings)


# --- Health ----------------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok", "provider": REVIEW_PROVIDER}


# --- Analyze endpoints -----------------------------------------------------
@app.post("/api/face/analyze")
async def analyze_face(
    front: UploadFile = File(...),
    side: Optional[UploadFile] = File(None),
    premium: bool = Form(False),
    gender: Optional[str] = Form(None),
    angle: Optional[str] = Form(None),
    lighting: Optional[str] = Form(None),
):
    """
    Face analysis. `side` is the optional profile photo; `premium` selects the
    expanded tier. Rejects photos without a face, infers an appearance profile
    for scoring weights unless `gender` is given, and returns the calibrated
    analysis plus local photo warnings.
    """
    return await _run_analysis("face", front, side, premium, gender, angle, lighting)


@app.post("/api/body/analyze")
async def analyze_body(
    front: UploadFile = File(...),
    side: Optional[UploadFile] = File(None),
    premium: bool = Form(False),
    gender: Optional[str] = Form(None),
    lighting: Optional[str] = Form(None),
):
    return await _run_analysis("body", front, side, premium, gender, None, lighting)


# --- Best version ----------------------------------------------------------
@app.post("/api/best-version")
async def best_version(image: UploadFile = File(...), changes: Optional[str] = Form(None)):
    """
    Render an improved version of the photo. The change list comes from the
    model unless given in `changes` (one per line); falls back to returning the
    original image when generation is unavailable.
    """
    data = await image.read()
    if not data:
        raise HTTPException(status_code=400, detail="Image is required")
    original_url = _data_url(data, image.content_type)

    change_list = [c.strip() for c in (changes or "").splitlines() if c.strip()]
    guidance = ""
    if not change_list:
        try:
            plan = await run_in_threadpool(_provider().enhancement_plan, original_url)
            change_list, guidance = plan.changes, plan.imagenPrompt
        except (RuntimeError, ValueError) as e:
            logger.warning("enhancement plan unavailable, using default changes: %s", e)
            change_list = DEFAULT_CHANGES
    imagen_prompt = build_prompt(change_list, guidance)

    try:
        result_url = await run_in_threadpool(improve_photo, original_url, imagen_prompt)
        provider, available = "replicate", True
    except Exception as e:
        logger.warning("image generation unavailable, using fallback mode: %s", e)
        result_url, provider, available = original_url, "fallback", False

    return JSONResponse({
        "resultImageUrl": result_url,
        "changes": change_list,
        "imagenPrompt": imagen_prompt,
        "debug": {
            "usedProvider": provider,
            "imageGenerationAvailable": available,
            "fallbackMode": not available,
        },
    })


@app.post("/api/best-version/demo")
async def best_version_demo(image: Optional[UploadFile] = File(None)):
    result_url = None
    if image is not None:
        data = await image.read()
        if data:
            result_url = _data_url(data, image.content_type)
    return JSONResponse({
        "resultImageUrl": result_url,
        "changes": DEFAULT_CHANGES,
        "imagenPrompt": build_prompt(DEFAULT_CHANGES),
        "debug": {"usedProvider": "demo", "imageGenerationAvailable": False, "fallbackMode": True},
    })


# --- Debug endpoint (optional) -------------------------------------------
@app.get("/_debug_env")
def debug_env():
    # Do not expose secrets in production. This is for quick debug only.
    safe = {k: ("***" if k.lower().find("key") >= 0 or k.lower().find("token") >= 0 else v)
            for k, v in os.environ.items() if k.startswith(("REPLICATE", "OPENAI", "REVIEW", "CALIBRATION"))}
    return {
        "provider": REVIEW_PROVIDER,
        "fallback_on_error": FALLBACK_ON_ERROR,
        "calibration": CALIBRATION.model_dump(),
        "env": safe,
    }


# If run directly for local dev
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=int(os.getenv("PORT", 8001)), reload=True)
