"""Parse raw LLM extraction output into ExtractedContent"""

import json
import logging
import re

from pydantic import ValidationError

from .models import ExtractedContent

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def _as_content(data) -> ExtractedContent:
    if not isinstance(data, dict):
        raise ValueError("Extraction response is not a JSON object")
    return ExtractedContent.model_validate(data)


def parse_extraction_response(text: str, file_name: str) -> ExtractedContent:
    """Parse an extraction response.

    Tries strict JSON first, then the outermost ``{...}`` span (models
    sometimes wrap JSON in prose or code fences), and finally treats the
    whole response as plain text titled with the file name.
    """
    try:
        return _as_content(json.loads(text))
    except (json.JSONDecodeError, ValueError, ValidationError):
        pass

    match = _JSON_OBJECT.search(text)
    if match:
        try:
            return _as_content(json.loads(match.group(0)))
        except (json.JSONDecodeError, ValueError, ValidationError):
            pass

    logger.warning(f"Could not parse JSON from extraction response for {file_name}, using plain text")
    return ExtractedContent(title=file_name, language="en", full_text=text)
