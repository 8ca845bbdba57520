"""
Structured-output helpers for agents that answer with embedded JSON.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
import structlog

logger = structlog.get_logger()

_FENCED_JSON = re.compile(r"```json\s*(.*?)```", flags=re.IGNORECASE | re.DOTALL)

RecordT = TypeVar("RecordT", bound=BaseModel)


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text.strip())
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Pull the first JSON object out of free-form model output.

    A ```json fenced block wins; otherwise the span from the first '{' to the
    last '}' is tried. Returns None when nothing parses.
    """
    if not text:
        return None

    fenced = _FENCED_JSON.search(text)
    if fenced:
        parsed = _loads_object(fenced.group(1))
        if parsed is not None:
            return parsed

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return _loads_object(text[start:end + 1])


def validate_items(
    model: Type[RecordT],
    raw_items: Any,
    agent_name: str,
    field_name: str,
) -> Optional[List[RecordT]]:
    """Validate a list of records, dropping invalid entries.

    Returns None when the field is missing or every entry was rejected, so the
    caller can keep whatever value it already holds.
    """
    if not isinstance(raw_items, list):
        if raw_items is not None:
            logger.warning("structured_field_not_a_list", agent=agent_name, field=field_name)
        return None

    valid: List[RecordT] = []
    for index, item in enumerate(raw_items):
        try:
            valid.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "structured_item_dropped",
                agent=agent_name,
                field=field_name,
                index=index,
                errors=exc.error_count(),
            )

    if raw_items and not valid:
        return None
    return valid


def dump_records(records: Iterable[BaseModel]) -> List[Dict[str, Any]]:
    return [record.model_dump(mode="json", by_alias=True) for record in records]
