"""citerag.evaluation

Manual-judging retrieval evaluation: question extraction and Markdown
reporting of the top hits per question.
"""
from .question_set import QuestionResult, evaluate_questions, parse_questions, render_report

__all__ = ["QuestionResult", "evaluate_questions", "parse_questions", "render_report"]
