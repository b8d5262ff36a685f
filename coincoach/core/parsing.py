"""Pull JSON out of free-form model output.

Models wrap JSON in markdown fences, add prose around it, or ignore the
requested format entirely. Callers get a ``ParseResult`` and decide what a
degraded or failed parse means for them.
"""
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

_FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")
_BARE_OBJECT = re.compile(r"(\{[\s\S]*\})")


class ParseStatus(str, Enum):
    PARSED = "parsed"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class ParseResult:
    status: ParseStatus
    value: Any = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ParseStatus.PARSED

    @classmethod
    def parsed(cls, value: Any) -> "ParseResult":
        return cls(ParseStatus.PARSED, value)

    @classmethod
    def degraded(cls, value: Any, reason: str) -> "ParseResult":
        return cls(ParseStatus.DEGRADED, value, reason)

    @classmethod
    def failed(cls, reason: str) -> "ParseResult":
        return cls(ParseStatus.FAILED, None, reason)


def strip_code_fences(text: str) -> str:
    """Return the body of the first ```json (or bare ```) block, else the text."""
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]
    return text.strip()


def extract_fenced_json(text: str) -> ParseResult:
    """Parse the fenced block (or the whole text) as JSON of any shape."""
    try:
        return ParseResult.parsed(json.loads(strip_code_fences(text)))
    except (json.JSONDecodeError, IndexError) as e:
        return ParseResult.failed(f"invalid JSON: {e}")


def extract_json_object(text: str) -> ParseResult:
    """Locate and parse a JSON object.

    Tries a fenced block holding an object, then the widest ``{...}`` span
    in the raw text, then the raw text itself.
    """
    match = _FENCED_OBJECT.search(text) or _BARE_OBJECT.search(text)
    candidate = match.group(1) if match else text
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return ParseResult.failed(f"invalid JSON: {e}")
    if not isinstance(value, dict):
        return ParseResult.failed(f"expected an object, got {type(value).__name__}")
    return ParseResult.parsed(value)
