import logging
from functools import lru_cache

from openai import OpenAI

from fruit_counter.config import CLOVA_API_KEY, CLOVA_BASE_URL, CLOVA_TIMEOUT_SEC

logger = logging.getLogger(__name__)


@lru_cache
def get_clova_client() -> OpenAI:
    if not CLOVA_API_KEY:
        raise RuntimeError("CLOVA_API_KEY is not set")
    logger.info("Initializing CLOVA Studio client (base_url=%s)", CLOVA_BASE_URL)
    return OpenAI(api_key=CLOVA_API_KEY, base_url=CLOVA_BASE_URL, timeout=CLOVA_TIMEOUT_SEC)
