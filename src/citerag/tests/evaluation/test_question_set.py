from citerag.common import RankedResult
from citerag.evaluation import QuestionResult, evaluate_questions, parse_questions, render_report


def test_parse_numbered_bulleted_and_labelled_lines():
    md = "\n".join([
        "# Evaluation questions",
        "",
        "1. What is the retry policy?",
        "2) How does authentication work?",
        "- Which role can refund?",
        "* Where are events published?",
        "Q5: 注文ステータスの遷移は？",
        "q6：監査ログはどこ？",
        "Some prose that is not a question",
    ])

    assert parse_questions(md) == [
        "What is the retry policy?",
        "How does authentication work?",
        "Which role can refund?",
        "Where are events published?",
        "注文ステータスの遷移は？",
        "監査ログはどこ？",
    ]


def test_falls_back_to_lines_with_question_marks():
    md = "Intro\nWhat is the SLA?\nリトライ回数は？\nNo question here"
    assert parse_questions(md) == ["What is the SLA?", "リトライ回数は？"]


def test_no_questions():
    assert parse_questions("just text\n\nmore text") == []


def test_evaluate_and_render_report(sample_service):
    results = evaluate_questions(sample_service, ["retry"], top_k=2)

    assert len(results) == 1
    assert len(results[0].hits) == 2

    report = render_report(
        results,
        questions_file="docs/evaluation_questions.md",
        index_file="artifacts/index.json",
        model="keyword-test",
        top_k=2,
    )

    assert "- embedding_model: keyword-test" in report
    assert "## Q1. retry" in report
    top1 = report.split("### Top 1\n", 1)[1].split("### Top 2", 1)[0]
    assert top1.startswith("- weighted: 1.552")
    assert "- score: 1.0000\n- source: docs/api.md\n- heading: Retry policy\n- part: 0\n" in top1
    assert "### Top 2" in report
    assert "### Top 3" not in report


def test_report_preview_is_collapsed_and_truncated(chunk_factory):
    chunk = chunk_factory("docs/a.md", "H", "word\n\n  " * 100, [1.0])
    report = render_report(
        [QuestionResult("q", [RankedResult(chunk, 0.5, 0.5)])],
        questions_file="q.md", index_file="i.json", model="m", top_k=1,
    )

    preview_line = next(line for line in report.splitlines() if line.startswith("- preview: "))
    body = preview_line[len("- preview: "):]
    assert body.endswith("...")
    assert len(body) == 240 + 3
    assert "\n" not in body and "  " not in body
