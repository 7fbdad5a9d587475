# backend/analysis_parser.py

import json
import logging
import re

from pydantic import ValidationError

from errors import AnalysisParseFailure
from schemas import DocumentAnalysis

logger = logging.getLogger(__name__)

JSON_FENCE = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)
PLAIN_FENCE = re.compile(r"```\s*\n(.*?)\n\s*```", re.DOTALL)


def fallback_analysis() -> dict:
    return {
        "summary": "Document uploaded successfully. Analysis details may be incomplete.",
        "key_points": ["Content available for chat"],
        "sentiment": "neutral",
        "keywords": [],
        "entities": {},
    }


def extract_json(text: str) -> dict:
    """Pull the JSON object out of a completion, fenced or bare."""
    match = JSON_FENCE.search(text) or PLAIN_FENCE.search(text)
    candidate = match.group(1) if match else text
    try:
        parsed = json.loads(candidate.strip())
    except json.JSONDecodeError as e:
        raise AnalysisParseFailure(f"not valid JSON: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise AnalysisParseFailure(f"expected an object, got {type(parsed).__name__}")
    return parsed


def parse_analysis(text: str) -> dict:
    """Parse a completion into the analysis shape, or return the fallback analysis."""
    try:
        parsed = extract_json(text or "")
        return DocumentAnalysis.model_validate(parsed).model_dump()
    except AnalysisParseFailure as e:
        logger.warning(f"Using fallback analysis: {e}")
    except ValidationError as e:
        logger.warning(f"Using fallback analysis: {e.error_count()} missing or malformed field(s)")
    return fallback_analysis()
