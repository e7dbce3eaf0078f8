"""
JSON utilities for cleaning LLM responses.
"""

import re

from json_repair import repair_json

from .logging_config import get_logger

logger = get_logger(__name__)

FENCED_BLOCK = re.compile(r'```(?:json)?\s*([\s\S]*?)```', re.IGNORECASE)


def extract_json_payload(response: str) -> str:
    """Pull the JSON part out of an LLM response.

    Tries, in order: the first fenced code block, the span from the first '{'
    to the last '}', and finally the whole trimmed response.

    Args:
        response: Raw LLM response

    Returns:
        Candidate JSON text
    """
    trimmed = response.strip()

    fenced = FENCED_BLOCK.search(trimmed)
    if fenced and fenced.group(1):
        return fenced.group(1).strip()

    first_brace = trimmed.find('{')
    last_brace = trimmed.rfind('}')
    if first_brace != -1 and last_brace > first_brace:
        return trimmed[first_brace:last_brace + 1].strip()

    return trimmed


def repair_json_payload(payload: str) -> str:
    """Best-effort structural repair (trailing commas, unquoted keys, ...).

    Repair is advisory: if it fails or produces nothing, the payload is
    returned unchanged.
    """
    try:
        repaired = repair_json(payload)
    except Exception as e:
        logger.warning(f'Failed to repair generated JSON, falling back to raw payload: {e}')
        return payload

    if not isinstance(repaired, str) or not repaired.strip() or repaired.strip() == '""':
        logger.warning('JSON repair produced no output, falling back to raw payload')
        return payload
    return repaired
