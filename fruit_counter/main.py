"""Main FastAPI application."""

import asyncio
import logging
import sys
import time
from datetime import datetime, timezone

from fastapi import FastAPI, UploadFile, File, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fruit_counter.config import (
    CORS_ORIGINS,
    ALLOW_ALL_ORIGINS,
    DEBUG_RAW,
    DELETE_AFTER_INFER,
    STORAGE_BACKEND,
)
from fruit_counter.image_normalize import ImageDecodeError, normalize_image
from fruit_counter.reconcile import reconcile_reply
from fruit_counter.services import ask_fruit_counts
from fruit_counter.storage import MemoryImageStorage, get_storage

# -----------------------------------
# App setup
# -----------------------------------

app = FastAPI(title="Fruit basket counter")

logging.basicConfig(
    level=logging.INFO,
    stream=sys.stdout,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)

# -----------------------------------
# CORS
# -----------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=not ALLOW_ALL_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------------
# Service endpoints
# -----------------------------------


@app.get("/")
def index():
    return {
        "message": "Fruit basket counter API",
        "status": "running",
        "ts": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/images/{key}")
def get_image(key: str):
    """Serve images published by the in-memory storage backend."""
    if STORAGE_BACKEND != "memory":
        raise HTTPException(404, "Not found")
    storage = get_storage()
    if not isinstance(storage, MemoryImageStorage):
        raise HTTPException(404, "Not found")
    item = storage.get(key)
    if item is None:
        raise HTTPException(404, "Not found")
    data, mime = item
    return Response(content=data, media_type=mime, headers={"Cache-Control": "no-store"})


# -----------------------------------
# /analyze — fruit counts and prices
# -----------------------------------


def _delete_published(storage, key: str) -> None:
    try:
        storage.delete(key)
    except Exception as e:
        logger.warning("Failed to delete published image %s: %s", key, e)


@app.post("/analyze")
async def analyze_photo(image: UploadFile = File(None)):
    if not image:
        raise HTTPException(400, "image is required")

    total_start = time.time()
    logger.info("[PIPELINE] Starting /analyze endpoint for file: %s", image.filename)

    content = await image.read()

    # STEP 1 — normalize to the model's size/byte limits
    t = time.time()
    try:
        processed = await asyncio.to_thread(normalize_image, content)
    except ImageDecodeError as e:
        logger.warning("[PIPELINE] Step 1: rejected upload %s: %s", image.filename, e)
        raise HTTPException(422, f"Unsupported or corrupted image: {e}")
    normalize_ms = round((time.time() - t) * 1000, 2)
    logger.info("[PIPELINE] Step 1: Normalized in %sms", normalize_ms)

    storage = None
    key_for_delete = None
    try:
        # STEP 2 — publish at a URL the model can fetch
        t = time.time()
        # first call builds the boto3 client
        storage = await asyncio.to_thread(get_storage)
        published = await asyncio.to_thread(storage.publish, processed.data, processed.mime)
        key_for_delete = published.key
        upload_ms = round((time.time() - t) * 1000, 2)
        logger.info("[PIPELINE] Step 2: Published %s in %sms", published.key, upload_ms)

        # STEP 3 — model call
        t = time.time()
        raw = await asyncio.to_thread(ask_fruit_counts, published.url)
        model_ms = round((time.time() - t) * 1000, 2)
        logger.info("[PIPELINE] Step 3: Model answered in %sms", model_ms)
    except Exception as e:
        logger.exception("Error in /analyze")
        return JSONResponse(
            status_code=500,
            content={"error": "clova_call_failed", "detail": str(e)},
        )
    finally:
        if DELETE_AFTER_INFER and storage is not None and key_for_delete:
            await asyncio.to_thread(_delete_published, storage, key_for_delete)

    # STEP 4 — reconcile reply
    result = reconcile_reply(raw).to_dict()

    processing_times = {
        "normalize_ms": normalize_ms,
        "upload_ms": upload_ms,
        "model_ms": model_ms,
        "total_ms": round((time.time() - total_start) * 1000, 2),
        "image_output_resolution": {"width": processed.width, "height": processed.height},
        "image_bytes": processed.size,
        "jpeg_quality": processed.quality,
    }
    result["processing_times"] = processing_times
    if DEBUG_RAW:
        result["raw"] = raw

    logger.info("[PIPELINE] /analyze timings_ms=%s", processing_times)
    return result
