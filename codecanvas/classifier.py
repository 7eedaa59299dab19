"""
Classification of raw execution outcomes into tagged results.

``classify`` applies an ordered list of rules; the first match wins:

1. the source raised                          -> error
2. the source was markup and not evaluated    -> markup
3. string value with an image payload marker  -> plot
4. string value containing a ``<table`` tag   -> markup fragment
5. string value that parses as JSON           -> structured
6. non-empty captured stdout                  -> text
7. any other non-empty value                  -> text
8. nothing                                    -> empty

Image and table payloads are unambiguous and come before printed output.
A returned JSON value is more specific than incidental printed text.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .results import ExecutionOutcome, ExecutionResult

IMAGE_MARKER_RE = re.compile(r"^(?:data:)?(image/[\w.+-]+);base64,", re.IGNORECASE)

_MARKUP_START_RE = re.compile(r"^<(?:!|[a-zA-Z])")
_FULL_DOCUMENT_RE = re.compile(r"^<(?:!doctype|html)\b", re.IGNORECASE)
_BODY_TAG_RE = re.compile(r"<body[\s>]", re.IGNORECASE)


def looks_like_markup(source: str) -> bool:
    """True when *source* is a markup document or fragment rather than code."""
    text = source.strip()
    return bool(_MARKUP_START_RE.match(text) or _BODY_TAG_RE.search(text))


def is_full_document(markup: str) -> bool:
    return bool(_FULL_DOCUMENT_RE.match(markup.strip()))


def split_image_payload(value: str) -> tuple[str, str] | None:
    """Return ``(media_type, base64_payload)`` for an image marker string."""
    match = IMAGE_MARKER_RE.match(value)
    if match is None:
        return None
    return match.group(1).lower(), value[match.end():]


def _parse_structured(value: str) -> Any:
    trimmed = value.strip()
    if not trimmed.startswith(("{", "[")):
        raise ValueError("not a structured value")
    return json.loads(trimmed)


def classify(outcome: ExecutionOutcome) -> ExecutionResult:
    """Map an ``ExecutionOutcome`` to an ``ExecutionResult``. Side-effect free."""
    if outcome.threw:
        return ExecutionResult.error(outcome.error_message or "Unknown execution error")

    raw = outcome.raw_value

    if outcome.markup:
        text = str(raw)
        return ExecutionResult.markup(text, is_full_document(text))

    if isinstance(raw, str):
        if IMAGE_MARKER_RE.match(raw):
            return ExecutionResult.plot(raw)

        if "<table" in raw:
            return ExecutionResult.markup(raw, is_full_document=False)

        try:
            parsed = _parse_structured(raw)
        except (ValueError, RecursionError):
            pass
        else:
            return ExecutionResult.structured(json.dumps(parsed, indent=2, ensure_ascii=False))

    captured = outcome.captured_output.strip()
    if captured:
        return ExecutionResult.text(captured)

    if raw is not None:
        text = str(raw)
        if text:
            return ExecutionResult.text(text)

    return ExecutionResult.empty()
