import pytest

from conftest import Clock, FakeProvider, hit, make_settings
from meeplenews.errors import AllProvidersExhausted, ProviderNetworkError
from meeplenews.services.keywords import DEFAULT_CATALOG, KeywordCatalog, KeywordLayer
from meeplenews.services.orchestrator import SearchOrchestrator, date_restrict_for
from meeplenews.services.router import ProviderRouter

CATALOG = KeywordCatalog(
    layers=(
        KeywordLayer("general", ("board game news", "tabletop release", "card game news")),
        KeywordLayer("manufacturer", ("Asmodee", "CMON"), query_suffix="board game"),
        KeywordLayer("event", ("Gen Con",), query_suffix="board game"),
    )
)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def hits_for(query: str):
    slug = query.replace(" ", "-").lower()
    return [hit(f"{query} #1", f"https://example.com/{slug}/1"), hit(f"{query} #2", f"https://example.com/{slug}/2")]


def make_orchestrator(provider, **overrides) -> tuple[SearchOrchestrator, RecordingSleep]:
    settings = make_settings(**overrides)
    router = ProviderRouter([provider], settings=settings, clock=Clock())
    sleep = RecordingSleep()
    return SearchOrchestrator(router=router, catalog=CATALOG, settings=settings, sleep=sleep), sleep


@pytest.mark.parametrize(
    ("hours", "expected"),
    [(6, "d1"), (12, "d1"), (24, "d1"), (25, "w1"), (168, "w1"), (169, "m1")],
)
def test_date_restrict_is_coarse(hours: int, expected: str) -> None:
    assert date_restrict_for(hours) == expected


def test_query_plan_follows_catalog_order_and_limit() -> None:
    orchestrator, _ = make_orchestrator(FakeProvider("serper"), max_keywords_per_layer=2)
    plan = orchestrator.build_queries(6)

    assert [[q.keyword for q in layer] for layer in plan] == [
        ["board game news", "tabletop release"],
        ["Asmodee", "CMON"],
        ["Gen Con"],
    ]
    assert plan[1][0].text == "Asmodee board game"
    assert plan[0][0].text == "board game news"
    assert all(q.hours_limit == 6 for layer in plan for q in layer)


def test_seeded_selection_is_reproducible() -> None:
    layer = DEFAULT_CATALOG.layers[1]
    first = DEFAULT_CATALOG.select(layer, 4, seed=7)
    second = DEFAULT_CATALOG.select(layer, 4, seed=7)

    assert first == second
    assert len(first) == 4
    assert first == [kw for kw in layer.keywords if kw in first]
    assert DEFAULT_CATALOG.select(layer, 4) == list(layer.keywords[:4])


@pytest.mark.asyncio
async def test_results_are_tagged_and_merged_in_submission_order() -> None:
    # the first query of each layer is the slowest, so completion order differs
    delays = {"board game news": 0.05, "Asmodee board game": 0.03}

    class SlowFirst(FakeProvider):
        async def search(self, query, options):
            self.delay = delays.get(query, 0.0)
            return await super().search(query, options)

    provider = SlowFirst("serper", hits_for)
    orchestrator, sleep = make_orchestrator(provider, search_concurrency=3, inter_layer_delay_ms=1500)

    results = await orchestrator.perform_search(12)

    assert [(r.layer, r.keyword) for r in results[::2]] == [
        ("general", "board game news"),
        ("general", "tabletop release"),
        ("general", "card game news"),
        ("manufacturer", "Asmodee"),
        ("manufacturer", "CMON"),
        ("event", "Gen Con"),
    ]
    assert results[0].url == "https://example.com/board-game-news/1"
    assert sleep.calls == [1.5, 1.5]
    assert all(options.date_restrict == "d1" for _, options in provider.calls)
    assert orchestrator.stats.total_searches == 6
    assert orchestrator.stats.successful_searches == 6


@pytest.mark.asyncio
async def test_one_failing_keyword_does_not_abort_others() -> None:
    def flaky(query: str):
        if query == "tabletop release":
            raise ProviderNetworkError("serper", "connection reset")
        return hits_for(query)

    class Flaky(FakeProvider):
        async def search(self, query, options):
            self.calls.append((query, options))
            return flaky(query)

    orchestrator, _ = make_orchestrator(Flaky("serper"))

    results = await orchestrator.perform_search(6)

    keywords = {r.keyword for r in results}
    assert "tabletop release" not in keywords
    assert {"board game news", "card game news", "Asmodee", "CMON", "Gen Con"} <= keywords
    assert orchestrator.stats.failed_searches == 1


@pytest.mark.asyncio
async def test_total_exhaustion_propagates() -> None:
    orchestrator, _ = make_orchestrator(FakeProvider("serper", enabled=False))

    with pytest.raises(AllProvidersExhausted):
        await orchestrator.perform_search(6)

    assert orchestrator.stats.failed_searches == 6


@pytest.mark.asyncio
async def test_unexpected_router_errors_are_not_counted_as_success() -> None:
    class BrokenRouter(ProviderRouter):
        async def search(self, query, options=None):
            raise RuntimeError("cache corrupted")

    settings = make_settings()
    router = BrokenRouter([FakeProvider("serper")], settings=settings, clock=Clock())
    orchestrator = SearchOrchestrator(
        router=router, catalog=CATALOG, settings=settings, sleep=RecordingSleep()
    )

    with pytest.raises(RuntimeError, match="cache corrupted"):
        await orchestrator.perform_search(6)

    assert orchestrator.stats.successful_searches == 0
    assert orchestrator.stats.failed_searches == 6
