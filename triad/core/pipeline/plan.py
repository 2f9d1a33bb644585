"""
Research plan produced by the planner role.
"""

import json
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from triad.utils.logging import get_logger

logger = get_logger(__name__)


class PlannerOutput(BaseModel):
    """Shape the planner is asked to reply with."""
    
    model_config = ConfigDict(str_strip_whitespace=True)
    
    search_term: str = Field(..., min_length=1)
    response_format: str = Field(..., min_length=1)


@dataclass(frozen=True)
class Plan:
    search_term: str
    response_format: str
    fallback: bool = False


def extract_json_object(text: str) -> dict:
    """
    Decode the first top-level JSON object embedded in ``text``.
    
    Raises:
        ValueError: If there is no brace or the object does not decode
    """
    start = text.find("{")
    if start < 0:
        raise ValueError("no JSON object found")
    obj, _ = json.JSONDecoder().raw_decode(text, start)
    if not isinstance(obj, dict):
        raise ValueError("not a JSON object")
    return obj


def parse_plan(raw: str, question: str, default_format: str) -> Plan:
    """
    Parse planner output permissively.
    
    Any failure (no braces, bad JSON, missing or empty fields) yields a
    plan that searches for the question itself with ``default_format``.
    """
    try:
        parsed = PlannerOutput.model_validate(extract_json_object(raw or ""))
    except (ValueError, SchemaError) as e:
        logger.warning(f"Planner output unusable ({e}); using default plan")
        return Plan(search_term=question, response_format=default_format, fallback=True)
    
    return Plan(
        search_term=parsed.search_term,
        response_format=parsed.response_format,
    )
