"""
Derives the "which tools, and why" trace shown to the visitor while tools run.

Best effort: the model is asked to announce its plan in prose ("I'll use the
Strava data to check your last ride."), and the first sentence that reads
like that becomes the trace. Otherwise one is synthesized from the tool names.
"""
from __future__ import annotations

import re
from typing import List, Optional

from ..schemas import PlanningTrace, ToolCallRequest
from .registry import tool_label

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+|\n+")
_PLAN_SENTENCE = re.compile(r"\bI(?:['’]ll| will)\s+use\b.+?\bto\b", re.IGNORECASE)


def _unique(names: List[str]) -> List[str]:
    seen: List[str] = []
    for name in names:
        if name not in seen:
            seen.append(name)
    return seen


def find_plan_sentence(text: Optional[str]) -> Optional[str]:
    for sentence in _SENTENCE_SPLIT.split(text or ""):
        sentence = sentence.strip()
        if sentence and _PLAN_SENTENCE.search(sentence):
            return sentence
    return None


def _join_labels(labels: List[str]) -> str:
    if len(labels) == 1:
        return labels[0]
    return ", ".join(labels[:-1]) + " and " + labels[-1]


def synthesize_reasoning(tool_names: List[str]) -> str:
    labels = [tool_label(n) for n in tool_names]
    return f"I'll use the {_join_labels(labels)} to answer this question."


def extract_planning(text: Optional[str], calls: List[ToolCallRequest]) -> Optional[PlanningTrace]:
    if not calls:
        return None
    names = _unique([c.name for c in calls])
    reasoning = find_plan_sentence(text) or synthesize_reasoning(names)
    return PlanningTrace(tools=names, reasoning=reasoning)
