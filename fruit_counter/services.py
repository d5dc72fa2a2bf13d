"""Services for CLOVA Studio interactions."""

import logging
from typing import Any

from fruit_counter.clova_client import get_clova_client
from fruit_counter.prompts import SYSTEM_PROMPT, COUNT_PROMPT
from fruit_counter.config import CLOVA_MODEL

logger = logging.getLogger(__name__)


def _client():
    return get_clova_client()


def ask_fruit_counts(image_url: str) -> Any:
    """
    Ask the vision model to count fruit baskets in the image at `image_url`.

    Returns the raw message content (usually a string, sometimes a list of
    content parts). Parsing is left to fruit_counter.reconcile.
    """
    model = (CLOVA_MODEL or "HCX-005").strip() or "HCX-005"
    logger.info("Asking model=%s for fruit counts", model)

    response = _client().chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": COUNT_PROMPT},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            },
        ],
        max_tokens=300,
        temperature=0.2,
    )

    content = response.choices[0].message.content if response.choices else None
    logger.info("Model raw response: %s", content)
    return content
