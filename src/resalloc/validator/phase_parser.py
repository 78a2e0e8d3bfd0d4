# src/resalloc/validator/phase_parser.py
"""
@brief
Parser for phase/slot expressions.

@details
Workers (AvailableSlots) and tasks (PreferredPhases) describe the phases they
take part in with loosely formatted strings. This module is the single place that
decides which encodings are accepted, in a fixed detection order:

    1. "[a-b]" / "[a - b]"   bracketed inclusive range
    2. "[n1, n2, ...]"       JSON array of positive numbers (canonical form)
    3. "a-b"                 unbracketed inclusive range
    4. "n1,n2,..."           comma list (accepted, advisory)
    5. "n"                   single phase (accepted, advisory)
    6. anything else         unrecognized

Blank input means "not specified" and is neither accepted nor rejected.

Phase numbers are ASCII digits only. Ranges have no upper bound: "1-3000000"
expands to three million phases, and every phase a task demands beyond
capacity becomes its own saturation finding, so a typo in a range is slow to
validate and floods the report.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum

_DIGITS_RE = re.compile(r"^[0-9]+$")

EXPECTED_FORMATS = '"1-3", "[1-3]", "[1, 2, 3]", "1,2,3" or "2"'


class PhaseForm(str, Enum):
    EMPTY = "empty"
    BRACKET_RANGE = "bracket_range"
    JSON_ARRAY = "json_array"
    RANGE = "range"
    COMMA_LIST = "comma_list"
    SINGLE = "single"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class PhaseParseResult:
    """
    @brief
    Outcome of parsing one phase expression.

    @details
    On success `phases` holds the ascending, de-duplicated phase numbers.
    On failure `reason` explains what was wrong and `phases` is empty.
    """

    ok: bool
    form: PhaseForm
    raw: str = ""
    phases: tuple[int, ...] = field(default_factory=tuple)
    reason: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.form is PhaseForm.EMPTY

    @property
    def needs_normalization(self) -> bool:
        """True for accepted encodings that should be rewritten as an array."""
        return self.ok and self.form in (PhaseForm.COMMA_LIST, PhaseForm.SINGLE)

    def canonical(self) -> str:
        """Render the canonical bracket-array form, e.g. "[1, 2, 3]"."""
        return "[" + ", ".join(str(p) for p in self.phases) + "]"

    def __contains__(self, phase: object) -> bool:
        return phase in self.phases


def _success(raw: str, form: PhaseForm, phases: list[int] | range) -> PhaseParseResult:
    return PhaseParseResult(ok=True, form=form, raw=raw, phases=tuple(sorted(set(phases))))


def _failure(raw: str, form: PhaseForm, reason: str) -> PhaseParseResult:
    return PhaseParseResult(ok=False, form=form, raw=raw, reason=reason)


def _parse_positive_int(token: str) -> int | None:
    token = token.strip()
    if not _DIGITS_RE.match(token):
        return None
    value = int(token)
    return value if value > 0 else None


def _parse_range(raw: str, body: str, form: PhaseForm) -> PhaseParseResult:
    parts = [p.strip() for p in body.split("-")]
    if len(parts) != 2:
        return _failure(raw, form, f"Invalid range format: {raw}. Use a single 'start-end' pair")

    start = _parse_positive_int(parts[0])
    end = _parse_positive_int(parts[1])
    if start is None or end is None or start > end:
        return _failure(
            raw,
            form,
            f"Invalid range values: {raw}. Both values must be positive integers and start <= end",
        )
    return _success(raw, form, range(start, end + 1))


def _parse_json_array(raw: str) -> PhaseParseResult:
    form = PhaseForm.JSON_ARRAY
    try:
        parsed = json.loads(raw)
    except ValueError:
        return _failure(raw, form, f"Invalid array format in brackets: {raw}")

    if not isinstance(parsed, list):
        return _failure(raw, form, "Bracket notation must hold an array of phases")

    phases: list[int] = []
    for item in parsed:
        # bool is an int subclass; "true" is not a phase
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            return _failure(raw, form, "Phase array must contain positive numbers only")
        if not math.isfinite(item) or item <= 0 or item != int(item):
            return _failure(raw, form, "Phase array must contain positive whole numbers only")
        phases.append(int(item))
    return _success(raw, form, phases)


def _parse_comma_list(raw: str) -> PhaseParseResult:
    phases: list[int] = []
    for token in raw.split(","):
        value = _parse_positive_int(token)
        if value is None:
            return _failure(
                raw, PhaseForm.COMMA_LIST, f"All phases must be positive integers: {raw}"
            )
        phases.append(value)
    return _success(raw, PhaseForm.COMMA_LIST, phases)


def parse_phase_set(raw: str | None) -> PhaseParseResult:
    """
    @brief
    Parse a phase/slot expression into an ordered set of phase numbers.

    @details
    Applies the detection order documented at module level. The first matching
    encoding decides the outcome; later encodings are never tried as a fallback.

    @params
        raw : str | None
            Raw cell value (AvailableSlots or PreferredPhases).

    @returns
        PhaseParseResult with form EMPTY for blank input.
    """
    text = (raw or "").strip()
    if not text:
        return PhaseParseResult(ok=True, form=PhaseForm.EMPTY, raw=text)

    # (1)-(2) Bracketed forms
    if text.startswith("[") and text.endswith("]"):
        inner = text[1:-1].strip()
        if "-" in inner:
            return _parse_range(text, inner, PhaseForm.BRACKET_RANGE)
        return _parse_json_array(text)

    # (3) Unbracketed range
    if "-" in text and "[" not in text and "]" not in text:
        return _parse_range(text, text, PhaseForm.RANGE)

    # (4) Comma list
    if "," in text:
        return _parse_comma_list(text)

    # (5) Single phase
    if _DIGITS_RE.match(text):
        value = int(text)
        if value <= 0:
            return _failure(text, PhaseForm.SINGLE, f"Invalid phase number: {text}")
        return _success(text, PhaseForm.SINGLE, [value])

    # (6) Unknown
    return _failure(
        text,
        PhaseForm.UNRECOGNIZED,
        f"Unrecognized format: {text}. Use formats like {EXPECTED_FORMATS}",
    )


__all__ = ["EXPECTED_FORMATS", "PhaseForm", "PhaseParseResult", "parse_phase_set"]
