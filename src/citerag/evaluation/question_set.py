"""citerag.evaluation.question_set

Retrieval evaluation over a Markdown list of questions.

Questions are extracted from a loosely formatted Markdown file, each one is
run through the retrieval service, and the top hits are written to a
Markdown report for manual OK/NG judging.

Classes
-------
QuestionResult
    Ranked hits for one question.

Functions
---------
parse_questions
    Extract question strings from Markdown.
evaluate_questions
    Rank the index for every question.
render_report
    Render results as a Markdown report.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List

from citerag.common import CanonicalSearchCall, RankedResult

REPORT_PREVIEW_CHARS = 240

_NUMBERED_RE = re.compile(r"^\d+[.)]\s*(.+)$")
_BULLET_RE = re.compile(r"^[-*]\s+(.+)$")
_Q_LABEL_RE = re.compile(r"^Q\d+[:：]\s*(.+)$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class QuestionResult:
    """Ranked hits for one evaluation question."""
    question: str
    hits: List[RankedResult] = field(default_factory=list)


def parse_questions(markdown: str) -> list[str]:
    """Extract questions from a Markdown document.

    Recognised line forms are ``1. xxx``, ``1) xxx``, ``- xxx``, ``* xxx``
    and ``Q1: xxx`` (ASCII or full-width colon). When no line matches, every
    line containing ``?`` or ``？`` is taken as a question instead.

    Parameters
    ----------
    markdown : str
        Raw file content.

    Returns
    -------
    list[str]
        Questions in file order, trimmed.
    """
    lines = [line.strip() for line in re.split(r"\r?\n", markdown)]
    questions: list[str] = []

    for line in lines:
        if not line:
            continue
        for pattern in (_NUMBERED_RE, _BULLET_RE, _Q_LABEL_RE):
            m = pattern.match(line)
            if m and m.group(1).strip():
                questions.append(m.group(1).strip())
                break

    if not questions:
        questions = [line for line in lines if "?" in line or "？" in line]

    return questions


def evaluate_questions(service, questions: Iterable[str], top_k: int) -> list[QuestionResult]:
    """Rank the index for each question with ``service``.

    Parameters
    ----------
    service : RetrievalService
        Service bound to the index under evaluation.
    questions : Iterable[str]
        Questions to run.
    top_k : int
        Hits kept per question.
    """
    return [
        QuestionResult(question=q, hits=service.rank(CanonicalSearchCall(query=q, top_k=top_k)))
        for q in questions
    ]


def preview(text: str, limit: int = REPORT_PREVIEW_CHARS) -> str:
    """Collapse whitespace and cut ``text`` to ``limit`` characters, marking a cut with ``...``."""
    collapsed = _WHITESPACE_RE.sub(" ", text)
    if len(text) > limit:
        return collapsed[:limit] + "..."
    return collapsed[:limit]


def render_report(
        results: Iterable[QuestionResult],
        *,
        questions_file: str,
        index_file: str,
        model: str,
        top_k: int,
    ) -> str:
    """Render evaluation results as Markdown.

    Returns
    -------
    str
        Report with a header block and one section per question, each hit
        listing weighted score, raw score, source, heading, part and preview.
    """
    sections = [
        "# Retrieval evaluation\n\n"
        f"- questions_file: {questions_file}\n"
        f"- index_file: {index_file}\n"
        f"- embedding_model: {model}\n"
        f"- top_k: {top_k}\n\n"
        "> Mark each question OK / NG by hand.\n\n"
    ]

    for qi, result in enumerate(results, start=1):
        sections.append(f"## Q{qi}. {result.question}\n")
        sections.append("- verdict: (OK / NG)\n")
        sections.append("- notes:\n\n")

        for i, hit in enumerate(result.hits, start=1):
            chunk = hit.chunk
            sections.append(
                f"### Top {i}\n"
                f"- weighted: {hit.weighted_score:.4f}\n"
                f"- score: {hit.raw_score:.4f}\n"
                f"- source: {chunk.source}\n"
                f"- heading: {chunk.heading}\n"
                f"- part: {chunk.part_index}\n"
                f"- preview: {preview(chunk.text)}\n"
            )
        sections.append("\n")

    return "\n".join(sections)
