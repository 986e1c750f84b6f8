"""citerag.retrieval.reranker

Weighted ranking of indexed chunks against a query.

This module defines:
- a ranking policy container (source authority weights and keyword-triggered
  heading boosts), loaded from configuration data
- the weighted ranker that combines cosine similarity with the policy
- a small factory for configuration-driven construction

The final score is ``raw * source_weight * heading_weight``. It is an
unbounded ordering key; multipliers amplify the raw similarity in whichever
direction its sign points and are never clamped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from citerag.common import IndexedChunk, RankedResult
from citerag.common.errors import ConfigurationError
from citerag.retrieval.similarity import cosine_similarity

NEUTRAL_WEIGHT = 1.0
DEFAULT_POLICY_RESOURCE = "default_ranking_policy.yaml"


def _as_multiplier(value: Any, where: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{where} must be a number, got {value!r}.")
    try:
        multiplier = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{where} must be a number, got {value!r}.") from None
    if not math.isfinite(multiplier) or multiplier <= 0:
        raise ConfigurationError(f"{where} must be a positive finite number, got {value!r}.")
    return multiplier


def _as_str_tuple(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) and v for v in value):
        raise ConfigurationError(f"{where} must be a list of non-empty strings.")
    return tuple(value)


@dataclass(frozen=True)
class HeadingBoost:
    """Multiplier applied when a heading matches any substring or prefix."""

    multiplier: float
    contains: tuple[str, ...] = ()
    startswith: tuple[str, ...] = ()

    def matches(self, heading: str) -> bool:
        return any(s in heading for s in self.contains) or any(
            heading.startswith(p) for p in self.startswith
        )


@dataclass(frozen=True)
class HeadingRule:
    """A rule family: query keywords mapped to ordered heading boosts."""

    name: str
    keywords: tuple[str, ...]
    boosts: tuple[HeadingBoost, ...]

    def fires_for(self, query: str) -> bool:
        return any(k in query for k in self.keywords)

    def boost_for(self, heading: str) -> float | None:
        for boost in self.boosts:
            if boost.matches(heading):
                return boost.multiplier
        return None


@dataclass(frozen=True)
class RankingPolicy:
    """Hand-maintained ranking tables.

    Attributes
    ----------
    source_weights : Mapping[str, float]
        Authority multiplier per source id. Unknown sources get ``1.0``.
    heading_rules : tuple[HeadingRule, ...]
        Rule families checked in order.
    """

    source_weights: Mapping[str, float] = field(default_factory=dict)
    heading_rules: tuple[HeadingRule, ...] = ()

    def source_weight(self, source: str) -> float:
        return self.source_weights.get(source, NEUTRAL_WEIGHT)

    def heading_weight(self, heading: str, query: str) -> float:
        """Return the heading-intent multiplier for ``heading`` under ``query``.

        The first rule that fires for the query and has a boost matching the
        heading wins; later rules are not combined with it.
        """
        for rule in self.heading_rules:
            if not rule.fires_for(query):
                continue
            multiplier = rule.boost_for(heading)
            if multiplier is not None:
                return multiplier
        return NEUTRAL_WEIGHT

    @classmethod
    def from_config_dict(cls, config: Mapping[str, Any] | None) -> "RankingPolicy":
        """Build a policy from a mapping with ``source_weights`` and ``heading_rules``.

        Raises
        ------
        ConfigurationError
            If a table is malformed or a multiplier is not a positive number.
        """
        cfg = dict(config or {})

        raw_weights = cfg.get("source_weights") or {}
        if not isinstance(raw_weights, Mapping):
            raise ConfigurationError("'source_weights' must be a mapping of source -> multiplier.")
        source_weights = {
            str(source): _as_multiplier(weight, f"source_weights[{source!r}]")
            for source, weight in raw_weights.items()
        }

        raw_rules = cfg.get("heading_rules") or []
        if not isinstance(raw_rules, list):
            raise ConfigurationError("'heading_rules' must be a list of rule mappings.")

        rules: list[HeadingRule] = []
        for i, raw_rule in enumerate(raw_rules):
            if not isinstance(raw_rule, Mapping):
                raise ConfigurationError(f"heading_rules[{i}] must be a mapping.")
            name = str(raw_rule.get("name") or f"rule_{i}")
            keywords = _as_str_tuple(raw_rule.get("keywords"), f"heading_rules[{name}].keywords")
            if not keywords:
                raise ConfigurationError(f"heading_rules[{name}] must define at least one keyword.")

            boosts: list[HeadingBoost] = []
            for j, raw_boost in enumerate(raw_rule.get("boosts") or []):
                where = f"heading_rules[{name}].boosts[{j}]"
                if not isinstance(raw_boost, Mapping):
                    raise ConfigurationError(f"{where} must be a mapping.")
                boost = HeadingBoost(
                    multiplier=_as_multiplier(raw_boost.get("multiplier"), f"{where}.multiplier"),
                    contains=_as_str_tuple(raw_boost.get("contains"), f"{where}.contains"),
                    startswith=_as_str_tuple(raw_boost.get("startswith"), f"{where}.startswith"),
                )
                if not boost.contains and not boost.startswith:
                    raise ConfigurationError(f"{where} needs 'contains' or 'startswith'.")
                boosts.append(boost)

            rules.append(HeadingRule(name=name, keywords=keywords, boosts=tuple(boosts)))

        return cls(source_weights=source_weights, heading_rules=tuple(rules))

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RankingPolicy":
        with Path(path).open("r", encoding="utf-8") as f:
            return cls.from_config_dict(yaml.safe_load(f))

    @classmethod
    def default(cls) -> "RankingPolicy":
        """Load the policy packaged with :mod:`citerag.retrieval`."""
        res = resources.files("citerag.retrieval").joinpath(DEFAULT_POLICY_RESOURCE)
        return cls.from_config_dict(yaml.safe_load(res.read_text(encoding="utf-8")))


class WeightedRanker:
    """Rank chunks by similarity scaled with source and heading weights.

    Parameters
    ----------
    policy : RankingPolicy or None, optional
        Weight tables. Defaults to a neutral policy (every weight ``1.0``).
    """

    def __init__(self, policy: RankingPolicy | None = None):
        self.policy = policy or RankingPolicy()

    def score(self, query_vector: Sequence[float], chunk: IndexedChunk, query: str) -> RankedResult:
        raw = cosine_similarity(query_vector, chunk.embedding)
        weighted = (
            raw
            * self.policy.source_weight(chunk.source)
            * self.policy.heading_weight(chunk.heading, query)
        )
        return RankedResult(chunk=chunk, raw_score=raw, weighted_score=weighted)

    def rank(
            self,
            query_vector: Sequence[float],
            chunks: Sequence[IndexedChunk],
            query: str,
            top_k: int,
        ) -> list[RankedResult]:
        """Return at most ``top_k`` results ordered by weighted score.

        Parameters
        ----------
        query_vector : Sequence[float]
            Embedding of ``query``.
        chunks : Sequence[IndexedChunk]
            Candidate chunks, in index order.
        query : str
            Query text, used for heading-intent weights.
        top_k : int
            Maximum number of results.

        Returns
        -------
        list[RankedResult]
            Results sorted by ``weighted_score`` descending. Ties keep index
            order (the sort is stable), so repeated calls are identical.
        """
        if top_k <= 0:
            return []
        scored = [self.score(query_vector, chunk, query) for chunk in chunks]
        scored.sort(key=lambda result: result.weighted_score, reverse=True)
        return scored[:top_k]


def create_ranker(
        config: Mapping[str, Any] | None = None,
        base_dir: str | Path | None = None,
    ) -> WeightedRanker:
    """Create a ranker from the ``ranking`` configuration section.

    Parameters
    ----------
    config : Mapping[str, Any] or None, optional
        May contain ``policy`` (path to a YAML policy file, resolved against
        ``base_dir`` when relative) and/or inline ``source_weights`` and
        ``heading_rules`` which replace the matching tables of the loaded
        policy. Empty or missing config uses the packaged default policy.
    base_dir : str or Path or None, optional
        Directory used to resolve a relative ``policy`` path.

    Returns
    -------
    WeightedRanker
        Configured ranker.
    """
    cfg = dict(config or {})
    policy_path = cfg.get("policy")

    if policy_path:
        path = Path(str(policy_path)).expanduser()
        if not path.is_absolute() and base_dir is not None:
            path = Path(base_dir) / path
        policy = RankingPolicy.from_yaml(path)
    else:
        policy = RankingPolicy.default()

    if "source_weights" in cfg or "heading_rules" in cfg:
        inline = RankingPolicy.from_config_dict(cfg)
        policy = RankingPolicy(
            source_weights=inline.source_weights if "source_weights" in cfg else policy.source_weights,
            heading_rules=inline.heading_rules if "heading_rules" in cfg else policy.heading_rules,
        )

    return WeightedRanker(policy)


__all__ = [
    "HeadingBoost",
    "HeadingRule",
    "RankingPolicy",
    "WeightedRanker",
    "create_ranker",
]
