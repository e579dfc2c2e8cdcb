"""
Discharge summary processing pipeline for PediBrief.

Prompt -> completion -> JSON extraction -> normalization, for a single
request. The processor keeps no per-request state.
"""

import time
from typing import Optional

from app.core.exceptions import JSONExtractionError
from app.core.json_extractor import extract_json_object
from app.core.llm_engine import (
    CompletionClient,
    get_completion_client,
    summary_generation_config,
)
from app.core.prompts import build_summary_prompt
from app.models.schemas import StructuredSummary
from app.services.summary_normalizer import normalize_summary
from app.utils.logger import get_logger

logger = get_logger("discharge_processor")


class DischargeProcessor:
    """
    Turns discharge text into a StructuredSummary.

    Every fatal failure (transport, HTTP, API payload, truncation,
    envelope extraction, JSON location/parse) propagates unchanged to
    the caller; missing or malformed fields never do.
    """

    def __init__(self, client: Optional[CompletionClient] = None):
        self.client = client or get_completion_client()
        self.generation_config = summary_generation_config()

    async def process(self, discharge_text: str) -> StructuredSummary:
        """
        Simplify one discharge summary.

        Args:
            discharge_text: Pasted summary, passed through unmodified

        Returns:
            Normalized StructuredSummary with sanitized quiz questions
        """
        if not discharge_text or not discharge_text.strip():
            raise ValueError("Discharge summary text is required")

        start_time = time.time()
        prompt = build_summary_prompt(discharge_text)

        completion = await self.client.complete(prompt, self.generation_config)

        try:
            parsed = extract_json_object(completion.text)
        except JSONExtractionError as e:
            logger.error("Could not extract summary JSON", error=str(e))
            raise

        summary = normalize_summary(parsed)

        logger.info(
            "Discharge summary processed",
            input_chars=len(discharge_text),
            processing_time_ms=int((time.time() - start_time) * 1000)
        )

        return summary


# Lazy-loaded singleton
_processor: Optional[DischargeProcessor] = None


def get_discharge_processor() -> DischargeProcessor:
    """Get or create discharge processor singleton."""
    global _processor
    if _processor is None:
        _processor = DischargeProcessor()
    return _processor
