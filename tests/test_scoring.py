from datetime import timedelta

import pytest

from conftest import NOW, make_settings
from meeplenews.models import Article
from meeplenews.services.scoring import (
    DEFAULT_CREDIBILITY,
    NEUTRAL_URGENCY,
    ScoringEngine,
    credibility_score,
    relevance_score,
    urgency_score,
)


@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine(settings=make_settings(), clock=lambda: NOW)


def make(title="Board game news", description="", url="https://example.com/a", **kw) -> Article:
    return Article(title=title, description=description, url=url, source="example.com", **kw)


def test_documented_example_scores_85(engine: ScoringEngine) -> None:
    article = make(
        title="Kickstarter launch for Wingspan expansion",
        description="Stonemaier opens the campaign today.",
        url="https://boardgamegeek.com/thread/1",
        published_at=NOW - timedelta(minutes=30),
    )

    scored = engine.score(article, NOW)

    assert scored.credibility_score == 90
    assert scored.relevance_score == 70
    assert scored.urgency_score == 95
    assert scored.combined_score == pytest.approx(85.0)
    assert article.combined_score == 0.0


def test_credibility_lookup_bonus_and_default() -> None:
    assert credibility_score(make(url="https://news.dicetower.com/x")) == 85
    assert credibility_score(make(url="https://www.polygon.com/x")) == 75
    assert credibility_score(make(url="https://unknown-blog.net/x")) == DEFAULT_CREDIBILITY
    official = make(url="https://unknown-blog.net/press-release/1")
    assert credibility_score(official) == DEFAULT_CREDIBILITY + 3
    quoted = make(url="https://boardgamegeek.com/x", description="According to the publisher, official dates")
    assert credibility_score(quoted) == 93


def test_fallback_credibility_is_capped() -> None:
    fallback = make(url="https://boardgamegeek.com/hotness", is_fallback=True)
    assert credibility_score(fallback) == 30


def test_relevance_counts_distinct_keywords_and_caps() -> None:
    assert relevance_score(make(title="Quiet week")) == 50
    assert relevance_score(make(title="Gen Con preorder list")) == 60
    loaded = make(
        title="Kickstarter crowdfunding announcement",
        description="New game release with expansion, award, preorder, 新作 発売 発表 予約",
    )
    assert relevance_score(loaded) == 100


@pytest.mark.parametrize(
    ("hours", "expected"),
    [
        (0, 100),
        (0.5, 95),
        (1, 90),
        (1.01, 80),
        (6, 70),
        (12, 50),
        (24, 40),
        (96, 25),
        (168, 20),
        (720, 5),
        (5000, 5),
    ],
)
def test_urgency_steps(hours: float, expected: int) -> None:
    assert urgency_score(NOW - timedelta(hours=hours), NOW) == expected


def test_urgency_missing_date_is_neutral_and_future_is_fresh() -> None:
    assert urgency_score(None, NOW) == NEUTRAL_URGENCY
    assert urgency_score(NOW + timedelta(hours=2), NOW) == 100


def test_urgency_is_monotonic_in_age() -> None:
    ages = [i * 0.25 for i in range(0, 4000)]
    scores = [urgency_score(NOW - timedelta(hours=age), NOW) for age in ages]
    assert all(a >= b for a, b in zip(scores, scores[1:]))
    assert all(0 <= s <= 100 for s in scores)


def test_scores_are_bounded_and_deterministic(engine: ScoringEngine) -> None:
    articles = [
        make(title="x", published_at=NOW - timedelta(days=90)),
        make(title="Kickstarter " * 30, url="https://boardgamegeek.com/official"),
        make(title="ボードゲーム 新作 発売", published_at=NOW + timedelta(days=1)),
    ]
    for item in articles:
        first = engine.score(item, NOW)
        second = engine.score(item, NOW)
        assert first == second
        for value in (first.credibility_score, first.relevance_score, first.urgency_score):
            assert 0 <= value <= 100
        assert first.combined_score == engine.combined(
            first.credibility_score, first.relevance_score, first.urgency_score
        )


def test_weights_are_configuration(engine: ScoringEngine) -> None:
    equal = ScoringEngine(
        settings=make_settings(credibility_weight=1, relevance_weight=1, urgency_weight=1)
    )
    assert equal.combined(90, 70, 95) == 255
    assert engine.combined(90, 70, 95) == pytest.approx(85.0)


def test_rank_sorts_by_combined_then_newest(engine: ScoringEngine) -> None:
    older = make(title="older", combined_score=70, published_at=NOW - timedelta(hours=5))
    newer = make(title="newer", combined_score=70, published_at=NOW - timedelta(hours=1))
    undated = make(title="undated", combined_score=70)
    best = make(title="best", combined_score=80, published_at=NOW - timedelta(days=3))
    low = make(title="low", combined_score=10)

    ranked = engine.rank([low, older, undated, newer, best])

    assert [a.title for a in ranked] == ["best", "newer", "older", "undated", "low"]
    scores = [a.combined_score for a in ranked]
    assert scores == sorted(scores, reverse=True)


def test_explain_lists_breakdown(engine: ScoringEngine) -> None:
    article = make(
        title="Expansion announced",
        url="https://www.boardgamegeek.com/x",
        published_at=NOW - timedelta(hours=2),
    )
    report = engine.explain(article, NOW)

    assert report["source"] == "boardgamegeek.com"
    assert report["matched_keywords"] == ["announced", "expansion"]
    assert report["credibility"] == 90
    assert report["weights"] == {"credibility": 0.5, "relevance": 0.3, "urgency": 0.2}
