# services/providers/vision_parser.py
"""
Pulls a match verdict out of free text written by a vision model.

Heuristic and prompt-dependent. Text it cannot read yields
matched=False, score=0, which the gateway reports as a FAILED result.
"""

import re
from typing import NamedTuple, Optional

_NUMBER = r"(\d+(?:\.\d+)?)"
CONFIDENCE_RE = re.compile(r"confidence\s*(?:score|level)?\s*[:=]?\s*" + _NUMBER, re.IGNORECASE)
SCORE_RE = re.compile(r"score\s*[:=]?\s*" + _NUMBER, re.IGNORECASE)
PERCENT_RE = re.compile(_NUMBER + r"\s*%")

NEGATIVE_RE = re.compile(r"\bno match\b|\bnot (?:a )?match|\bdifferent\b", re.IGNORECASE)
AFFIRMATIVE_RE = re.compile(r"\b(?:yes|true|positive)\b", re.IGNORECASE)
MATCH_RE = re.compile(r"\bmatch", re.IGNORECASE)
NEGATION_RE = re.compile(r"\b(?:no|not|never|cannot|unable)\b|n't\b", re.IGNORECASE)

INFERRED_MATCH_SCORE = 70.0


class VisionVerdict(NamedTuple):
    matched: bool
    score: float


def _extract_score(text: str) -> Optional[float]:
    found = CONFIDENCE_RE.search(text)
    if found:
        return float(found.group(1))

    found = SCORE_RE.search(text)
    if found:
        value = float(found.group(1))
        # "score: 0.85" is a fraction
        return value * 100 if value <= 1 else value

    found = PERCENT_RE.search(text)
    if found:
        return float(found.group(1))
    return None


def parse_vision_verdict(text: Optional[str]) -> VisionVerdict:
    if not text:
        return VisionVerdict(matched=False, score=0.0)

    score = _extract_score(text)
    score = 0.0 if score is None else max(0.0, min(100.0, score))

    negative = bool(NEGATIVE_RE.search(text))
    affirmative = bool(MATCH_RE.search(text) and AFFIRMATIVE_RE.search(text))

    if negative:
        matched = False
    elif affirmative:
        matched = True
    else:
        matched = score >= INFERRED_MATCH_SCORE and not NEGATION_RE.search(text)

    return VisionVerdict(matched=matched, score=score)
