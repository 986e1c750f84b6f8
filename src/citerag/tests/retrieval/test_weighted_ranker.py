import pytest

from citerag.common.errors import ConfigurationError
from citerag.retrieval.reranker import (
    HeadingBoost,
    HeadingRule,
    RankingPolicy,
    WeightedRanker,
    create_ranker,
)


def test_default_policy_source_weights():
    """The packaged policy ranks api/architecture above neutral and faq below."""
    policy = RankingPolicy.default()

    assert policy.source_weight("docs/api.md") == 1.15
    assert policy.source_weight("docs/architecture.md") == 1.1
    assert policy.source_weight("docs/overview.md") == 1.05
    assert policy.source_weight("docs/faq.md") == 0.95
    assert policy.source_weight("docs/unknown.md") == 1.0


def test_default_policy_heading_rules():
    policy = RankingPolicy.default()

    assert policy.heading_weight("リトライ方針", "リトライは何回？") == 1.35
    assert policy.heading_weight("バックオフ", "リトライは何回？") == 1.25
    assert policy.heading_weight("POST /v1/orders", "リトライは何回？") == 1.05
    assert policy.heading_weight("OAuth 2.0", "認証方式は？") == 1.25
    assert policy.heading_weight("Q. 返金できますか", "返金の権限は？") == 1.05
    assert policy.heading_weight("Anything", "weather tomorrow") == 1.0


def test_first_matching_family_wins():
    """A query firing two families takes the first family whose boost matches."""
    policy = RankingPolicy(
        heading_rules=(
            HeadingRule("a", ("alpha",), (HeadingBoost(2.0, contains=("X",)),)),
            HeadingRule("b", ("beta",), (HeadingBoost(3.0, contains=("X",)),)),
        )
    )
    assert policy.heading_weight("X marks", "alpha beta") == 2.0


def test_fires_without_matching_heading_falls_through_to_next_family():
    policy = RankingPolicy(
        heading_rules=(
            HeadingRule("a", ("alpha",), (HeadingBoost(2.0, contains=("Nope",)),)),
            HeadingRule("b", ("beta",), (HeadingBoost(3.0, startswith=("Q",)),)),
        )
    )
    assert policy.heading_weight("Q1 heading", "alpha beta") == 3.0
    assert policy.heading_weight("Other", "alpha beta") == 1.0


def test_rank_respects_top_k_and_sorts_descending(chunk_factory):
    chunks = [chunk_factory("docs/x.md", f"H{i}", f"t{i}", [1.0, float(i)]) for i in range(10)]
    ranker = WeightedRanker()

    results = ranker.rank([0.0, 1.0], chunks, "query", top_k=3)

    assert len(results) == 3
    scores = [r.weighted_score for r in results]
    assert scores == sorted(scores, reverse=True)
    assert results[0].chunk.heading == "H9"


def test_rank_returns_all_when_top_k_exceeds_chunks(chunk_factory):
    chunks = [chunk_factory("docs/x.md", "H", "t", [1.0, 0.0])]
    assert len(WeightedRanker().rank([1.0, 0.0], chunks, "q", top_k=8)) == 1


def test_rank_is_deterministic_and_ties_keep_index_order(chunk_factory):
    chunks = [chunk_factory("docs/x.md", f"H{i}", "same", [1.0, 1.0]) for i in range(5)]
    ranker = WeightedRanker()

    first = ranker.rank([1.0, 1.0], chunks, "q", top_k=5)
    second = ranker.rank([1.0, 1.0], chunks, "q", top_k=5)

    assert [r.chunk.id for r in first] == [r.chunk.id for r in second]
    assert [r.chunk.heading for r in first] == ["H0", "H1", "H2", "H3", "H4"]


def test_higher_source_weight_wins_on_equal_similarity(chunk_factory):
    """With identical raw scores the 1.15-weighted source outranks the 0.95 one."""
    faq = chunk_factory("docs/faq.md", "Answer", "faq", [0.6, 0.8])
    api = chunk_factory("docs/api.md", "Answer", "api", [0.6, 0.8])
    ranker = WeightedRanker(RankingPolicy.default())

    results = ranker.rank([0.6, 0.8], [faq, api], "neutral question", top_k=2)

    assert [r.chunk.source for r in results] == ["docs/api.md", "docs/faq.md"]
    assert results[0].raw_score == pytest.approx(results[1].raw_score)
    assert results[0].weighted_score == pytest.approx(results[0].raw_score * 1.15)


def test_negative_similarity_is_amplified_not_clamped(chunk_factory):
    api = chunk_factory("docs/api.md", "H", "api", [-1.0, 0.0])
    other = chunk_factory("docs/other.md", "H", "other", [-1.0, 0.0])
    ranker = WeightedRanker(RankingPolicy.default())

    results = ranker.rank([1.0, 0.0], [api, other], "q", top_k=2)

    assert results[0].chunk.source == "docs/other.md"
    assert results[1].weighted_score == pytest.approx(-1.15)


def test_heading_boost_changes_order(chunk_factory):
    plain = chunk_factory("docs/x.md", "Overview", "a", [1.0, 0.0])
    retry = chunk_factory("docs/x.md", "Retry policy", "b", [1.0, 0.0])
    ranker = WeightedRanker(RankingPolicy.default())

    results = ranker.rank([1.0, 0.0], [plain, retry], "how does retry work", top_k=2)

    assert results[0].chunk.heading == "Retry policy"
    assert results[0].weighted_score == pytest.approx(1.35)


@pytest.mark.parametrize("bad", [0, -1.0, "abc", True, float("inf")])
def test_invalid_multipliers_rejected(bad):
    with pytest.raises(ConfigurationError):
        RankingPolicy.from_config_dict({"source_weights": {"docs/a.md": bad}})


def test_boost_needs_a_matcher():
    cfg = {"heading_rules": [{"name": "r", "keywords": ["k"], "boosts": [{"multiplier": 1.2}]}]}
    with pytest.raises(ConfigurationError):
        RankingPolicy.from_config_dict(cfg)


def test_create_ranker_inline_tables_override_default():
    ranker = create_ranker({"source_weights": {"docs/special.md": 2.0}})

    assert ranker.policy.source_weight("docs/special.md") == 2.0
    assert ranker.policy.source_weight("docs/api.md") == 1.0
    # heading rules still come from the packaged default
    assert ranker.policy.heading_weight("Retry", "retry?") == 1.35


def test_create_ranker_loads_policy_file_relative_to_base_dir(tmp_path):
    (tmp_path / "policy.yaml").write_text(
        "source_weights:\n  docs/a.md: 1.5\nheading_rules: []\n", encoding="utf-8"
    )

    ranker = create_ranker({"policy": "policy.yaml"}, base_dir=tmp_path)

    assert ranker.policy.source_weight("docs/a.md") == 1.5
    assert ranker.policy.heading_rules == ()
