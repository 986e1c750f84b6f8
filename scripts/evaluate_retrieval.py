"""Retrieval evaluation entrypoint.

Runs every question from a Markdown question list through the retrieval
service and writes the top hits per question to a Markdown report for
manual OK/NG judging.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from citerag.app.container import build_container
from citerag.config import GlobalConfig
from citerag.evaluation import evaluate_questions, parse_questions, render_report

QUESTIONS_FILE_CANDIDATES = [
    Path("evaluation_questions.md"),
    Path("docs/evaluation_questions.md"),
    Path("artifacts/evaluation_questions.md"),
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate retrieval over a question list")

    parser.add_argument(
        "--config-file",
        "-c",
        required=True,
        type=str,
        help="Path to the YAML configuration file.",
    )

    parser.add_argument(
        "--questions-file",
        "-q",
        required=False,
        type=str,
        default=None,
        help="Markdown question list (default: first of evaluation_questions.md, "
             "docs/evaluation_questions.md, artifacts/evaluation_questions.md).",
    )

    parser.add_argument(
        "--output",
        "-o",
        required=False,
        type=str,
        default="artifacts/eval_report.md",
        help="Report path (default: artifacts/eval_report.md).",
    )

    parser.add_argument(
        "--top-k",
        "-k",
        required=False,
        type=int,
        default=5,
        help="Hits reported per question (default: 5).",
    )

    return parser.parse_args()


def _find_questions_file(cli_value: str | None) -> Path:
    if cli_value:
        return Path(cli_value)
    for candidate in QUESTIONS_FILE_CANDIDATES:
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        "No questions file found. Tried: "
        + ", ".join(str(c) for c in QUESTIONS_FILE_CANDIDATES)
    )


def main() -> None:
    args = parse_args()

    cfg = GlobalConfig.load(args.config_file)
    logging.basicConfig(level=cfg.log_level)
    container = build_container(cfg)

    questions_file = _find_questions_file(args.questions_file)
    questions = parse_questions(questions_file.read_text(encoding="utf-8"))
    if not questions:
        raise ValueError(f"No questions could be extracted from {questions_file}.")

    print(f"Evaluating {len(questions)} questions (top_k={args.top_k})...")
    results = evaluate_questions(container.service, questions, args.top_k)

    report = render_report(
        results,
        questions_file=questions_file.as_posix(),
        index_file=cfg.index_path.as_posix(),
        model=container.index.model,
        top_k=args.top_k,
    )

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(report, encoding="utf-8")

    print(f"Report written to {out_path}")


if __name__ == "__main__":
    main()
