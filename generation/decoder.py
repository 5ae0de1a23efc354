"""
Response decoding
Pull one structured JSON object out of free-form model output
"""
import json
import re
from typing import Any, Dict

from utils.exceptions import MalformedOutputError


_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")
_DECODER = json.JSONDecoder()


def _unwrap(value: Any) -> Any:
    """Reduce a {"questions": [...]} envelope or top-level array to its first object"""
    if isinstance(value, list):
        value = next((item for item in value if isinstance(item, dict)), None)
    if isinstance(value, dict):
        questions = value.get("questions")
        if isinstance(questions, list) and "question" not in value:
            return next((item for item in questions if isinstance(item, dict)), None)
    return value


def _scan(text: str) -> Any:
    """First decodable object or array in text, or None"""
    for idx, ch in enumerate(text):
        if ch not in "{[":
            continue
        try:
            value, _ = _DECODER.raw_decode(text, idx)
        except json.JSONDecodeError:
            continue
        value = _unwrap(value)
        if isinstance(value, dict):
            return value
    return None


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Extract the first JSON object from a model response

    Code fences and surrounding commentary are tolerated. Braces inside JSON
    strings (LaTeX such as \\frac{a}{b}) do not confuse the scan.

    Raises:
        MalformedOutputError: nothing in the text decodes to an object
    """
    content = str(text or "").strip()
    if not content:
        raise MalformedOutputError("empty response")

    for block in _FENCE_RE.findall(content):
        found = _scan(block.strip())
        if found is not None:
            return found

    found = _scan(content)
    if found is not None:
        return found

    raise MalformedOutputError("no JSON object in response", preview=content)
