"""
Strategic sampling of long documents.

Selects representative excerpts (head, midpoint, tail and clause-anchored
windows) so analysis prompts stay bounded while keeping stylistic signal.
Pure functions only: no I/O, no model calls.
"""

import re

from legalflow.models.document import Excerpt

WINDOW_SIZE = 3000
CLAUSE_LEAD = 500
CLAUSE_TAIL = 1500

# First match of each pattern anchors one clause window
CLAUSE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (
        "Clausula Confidencialidad",
        re.compile(r"confidencialidad|secreto|reserva", re.IGNORECASE),
    ),
    (
        "Clausula Responsabilidad",
        re.compile(r"responsabilidad|indemnizaci[oó]n|limitaci[oó]n", re.IGNORECASE),
    ),
    (
        "Clausula Resolucion",
        re.compile(r"resoluci[oó]n de conflictos|jurisdicci[oó]n|arbitraje", re.IGNORECASE),
    ),
    (
        "Clausula Terminacion",
        re.compile(r"terminaci[oó]n|rescisi[oó]n|extinci[oó]n", re.IGNORECASE),
    ),
]


def _clamp(value: int, length: int) -> int:
    return min(max(0, value), length)


def _excerpt(label: str, text: str, start: int, end: int) -> Excerpt:
    length = len(text)
    start, end = _clamp(start, length), _clamp(end, length)
    return Excerpt(label=label, start=start, end=max(start, end), text=text[start:end])


def extract_strategic_samples(
    text: str,
    window: int = WINDOW_SIZE,
    clause_lead: int = CLAUSE_LEAD,
    clause_tail: int = CLAUSE_TAIL,
) -> list[Excerpt]:
    """
    Return ``Start``, ``Middle`` and ``End`` windows followed by one window per
    matched clause pattern.

    Windows may overlap and are not deduplicated. All bounds are
    clamped to ``[0, len(text)]``.
    """
    length = len(text)
    samples = [_excerpt("Start", text, 0, window)]

    middle_start = max(0, length // 2 - window // 2)
    samples.append(_excerpt("Middle", text, middle_start, middle_start + window))

    samples.append(_excerpt("End", text, length - window, length))

    for label, pattern in CLAUSE_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue
        anchor = match.start()
        samples.append(_excerpt(label, text, anchor - clause_lead, anchor + clause_tail))

    return samples


def format_samples(samples: list[Excerpt]) -> str:
    """Render excerpts as numbered prompt sections."""
    return "\n\n".join(
        f"--- Sample {i}: {sample.label} ---\n{sample.text}"
        for i, sample in enumerate(samples, start=1)
    )
