"""Bounded JSON repair for generative-text output.

Parsing escalates in three steps: direct `json.loads`, a fenced code block
pulled out of the text, then up to `max_repairs` requests asking the
service to fix the content. The outcome is a `RepairResult` carrying the
parsed value, how many repair requests were spent, and the last error.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

FENCED_JSON = re.compile(r'```json\s*(.*?)```', re.DOTALL | re.IGNORECASE)
FENCED_ANY = re.compile(r'```\s*(.*?)```', re.DOTALL)

REPAIR_SYSTEM_PROMPT = (
    "You are a JSON formatting expert. Fix the provided content to be valid JSON. "
    "Return ONLY valid JSON, no explanations or markdown."
)

Completion = Callable[[List[Dict[str, str]]], Awaitable[str]]


@dataclass
class RepairResult:
    value: Optional[Dict[str, Any]] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def _loads_object(text: str) -> Dict[str, Any]:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def parse_direct(text: str) -> Dict[str, Any]:
    """Parse text or its fenced block; raises ValueError when neither is a JSON object."""
    try:
        return _loads_object(text)
    except ValueError as first:
        for pattern in (FENCED_JSON, FENCED_ANY):
            match = pattern.search(text or '')
            if match:
                try:
                    return _loads_object(match.group(1).strip())
                except ValueError:
                    continue
        raise first


def repair_messages(content: str) -> List[Dict[str, str]]:
    return [
        {'role': 'system', 'content': REPAIR_SYSTEM_PROMPT},
        {'role': 'user', 'content': f"Fix this content into valid JSON:\n\n{content}"},
    ]


async def parse_with_repair(content: str, complete: Completion, max_repairs: int = 2,
                            on_attempt: Callable[[bool], None] = None) -> RepairResult:
    """Parse generative output into a JSON object, spending at most max_repairs requests."""
    try:
        return RepairResult(value=parse_direct(content))
    except ValueError as e:
        last_error = str(e)

    for attempt in range(1, max_repairs + 1):
        logger.warning(f"JSON parse failed ({last_error}); repair attempt {attempt}/{max_repairs}")
        try:
            current = await complete(repair_messages(content))
            value = parse_direct(current)
        except ValueError as e:
            last_error = str(e)
        except Exception as e:
            last_error = f"repair request failed: {e}"
        else:
            if on_attempt:
                on_attempt(True)
            return RepairResult(value=value, attempts=attempt)
        if on_attempt:
            on_attempt(False)

    return RepairResult(attempts=max_repairs, error=last_error)
