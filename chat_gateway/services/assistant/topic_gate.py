"""Keyword heuristics that keep the assistant on HLR Lookup topics."""
from __future__ import annotations

import re
from typing import List, Literal, Pattern

GateVerdict = Literal["allow", "reject", "ambiguous"]

ALLOW_PATTERNS: List[Pattern[str]] = [
    re.compile(p)
    for p in (
        r"\bhlr\b",
        r"\bhome\s*location\s*register\b",
        r"\blookup\b",
        r"\bmsisdn\b",
        r"\bimsi\b",
        r"\bmccmnc\b",
        r"\bapi\b",
        r"\bendpoint\b",
        r"\bwebhook\b",
        r"\bpricing\b",
        r"\bauth(entication| token| header)?\b",
        r"\bcurl\b",
        r"\bintegration\b",
        r"\bcarrier\b",
        r"\bnumber\s*(validation|lookup)\b",
        r"\bstatus\s*codes?\b",
    )
]

REJECT_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\brecipe|cooking|travel|weather|movie|joke|poem|story|song\b"),
    re.compile(r"\bhomework|math|biology|history\b"),
]


def classify(text: str) -> GateVerdict:
    """Classify a user message.

    Allow patterns are tried first, then reject patterns. Anything matching
    neither list is rejected; only empty input comes back ``ambiguous``.
    """
    if not text:
        return "ambiguous"
    lowered = text.lower()
    for pattern in ALLOW_PATTERNS:
        if pattern.search(lowered):
            return "allow"
    for pattern in REJECT_PATTERNS:
        if pattern.search(lowered):
            return "reject"
    return "reject"
