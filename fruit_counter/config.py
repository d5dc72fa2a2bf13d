import os


def _parse_cors_origins(raw: str) -> list[str]:
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


CORS_ORIGINS = _parse_cors_origins(os.getenv("CORS_ORIGINS", "*"))
ALLOW_ALL_ORIGINS = CORS_ORIGINS == ["*"]

# DEBUG_RAW: include the model's raw reply in /analyze responses
DEBUG_RAW = os.getenv("DEBUG_RAW", "false").lower() == "true"

# -----------------------------------
# Image limits (vision model input constraints)
# -----------------------------------

# MAX_LONG_SIDE: longer side of the uploaded image must not exceed this (px)
MAX_LONG_SIDE = int(os.getenv("MAX_LONG_SIDE", "2240"))

# MAX_IMAGE_BYTES: encoded image must not exceed this (default 20 MiB)
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(20 * 1024 * 1024)))

# JPEG quality schedule: start, lowest allowed value and decrement per attempt
JPEG_QUALITY_INITIAL = int(os.getenv("JPEG_QUALITY_INITIAL", "85"))
JPEG_QUALITY_FLOOR = int(os.getenv("JPEG_QUALITY_FLOOR", "40"))
JPEG_QUALITY_STEP = int(os.getenv("JPEG_QUALITY_STEP", "10"))

# -----------------------------------
# CLOVA Studio configuration
# -----------------------------------

CLOVA_API_KEY = os.getenv("CLOVA_API_KEY")

# CLOVA_BASE_URL: OpenAI-compatible endpoint of CLOVA Studio
CLOVA_BASE_URL = os.getenv("CLOVA_BASE_URL", "https://clovastudio.stream.ntruss.com/v1/openai")

# CLOVA_MODEL: multimodal model used for counting (e.g. "HCX-005")
CLOVA_MODEL = os.getenv("CLOVA_MODEL", "HCX-005")

CLOVA_TIMEOUT_SEC = float(os.getenv("CLOVA_TIMEOUT_SEC", "30"))

# -----------------------------------
# Image publishing (the model fetches the image by URL)
# -----------------------------------

# STORAGE_BACKEND:
# - "s3"     — NCP Object Storage (S3 compatible), presigned GET URL
# - "memory" — in-process store served back via GET /images/{key}
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "s3").lower()

# DELETE_AFTER_INFER: remove the published image right after the model call
DELETE_AFTER_INFER = os.getenv("DELETE_AFTER_INFER", "true").lower() == "true"

NCP_OS_REGION = os.getenv("NCP_OS_REGION", "kr-standard")
NCP_OS_ENDPOINT = os.getenv("NCP_OS_ENDPOINT", "https://kr.object.ncloudstorage.com")
NCP_OS_ACCESS_KEY = os.getenv("NCP_OS_ACCESS_KEY")
NCP_OS_SECRET_KEY = os.getenv("NCP_OS_SECRET_KEY")
NCP_OS_BUCKET = os.getenv("NCP_OS_BUCKET", "")

# PRESIGN_EXPIRES_SEC: lifetime of the presigned GET URL handed to the model
PRESIGN_EXPIRES_SEC = int(os.getenv("PRESIGN_EXPIRES_SEC", "300"))

# PUBLIC_BASE_URL: externally reachable HTTPS base of this service ("memory" backend)
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/")

# IMAGE_TTL_SEC: how long an image stays fetchable in the memory store
IMAGE_TTL_SEC = int(os.getenv("IMAGE_TTL_SEC", "300"))

# MEMORY_STORE_MAX_ITEMS: oldest images are evicted beyond this count
MEMORY_STORE_MAX_ITEMS = int(os.getenv("MEMORY_STORE_MAX_ITEMS", "200"))

PORT = int(os.getenv("PORT", "3000"))
