"""Tests for the SearchOrchestrator facade."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from medsearch.models.provider import ProviderSpec
from medsearch.models.search import SearchRecord, SearchRequest, SearchResult
from medsearch.orchestration import OrchestrationState, SearchOrchestrator
from medsearch.services.aggregator import Aggregator
from medsearch.services.analytics import AnalyticsSink
from medsearch.services.cache_policy import generate_cache_key
from medsearch.services.cache_service import DiskResultCache, MemoryResultCache
from medsearch.services.dispatcher import Dispatcher
from medsearch.services.providers.base import ProviderClient, ProviderPayload
from medsearch.utils.exceptions import InvalidRequestError, NoProvidersAvailableError


class FakeProvider(ProviderClient):
    def __init__(self, name, results=(), delay=0.0):
        self._name = name
        self.results = list(results)
        self.delay = delay
        self.calls = 0

    @property
    def name(self):
        return self._name

    async def search(self, request):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return ProviderPayload(results=list(self.results), total_count=len(self.results))


def make_result(id, url, score, provider="brave", **kwargs):
    return SearchResult(
        id=id, title=id, url=url, provider=provider, relevance_score=score, **kwargs
    )


@pytest.fixture
def brave():
    return FakeProvider(
        "brave",
        [
            make_result("b1", "https://www.ahajournals.org/doi/HYP.65", 0.9, specialty="cardiology"),
            make_result("b2", "https://www.acc.org/guidelines/hypertension", 0.8),
        ],
    )


@pytest.fixture
def exa():
    return FakeProvider(
        "exa",
        [
            make_result("e1", "https://www.ahajournals.org/doi/HYP.65/", 0.95, provider="exa"),
            make_result("e2", "https://www.nejm.org/doi/full/10.1056", 0.7, provider="exa", specialty="nephrology"),
        ],
    )


@pytest.fixture
def cache():
    return MemoryResultCache(max_entries=10)


@pytest.fixture
def states():
    return []


@pytest.fixture
def orchestrator(brave, exa, cache, states):
    dispatcher = Dispatcher(
        specs=[ProviderSpec(name="brave", priority=1), ProviderSpec(name="exa", priority=2)],
        clients={"brave": brave, "exa": exa},
    )
    return SearchOrchestrator(
        dispatcher=dispatcher,
        aggregator=Aggregator(),
        cache=cache,
        on_transition=states.append,
    )


class TestSearch:
    """Happy-path behaviour."""

    @pytest.mark.asyncio
    async def test_merges_and_dedupes(self, orchestrator):
        result = await orchestrator.search({"q": "hypertension guidelines"})

        assert [r.id for r in result.results] == ["b1", "b2", "e2"]
        assert result.duplicates_removed == 1
        assert result.aggregated_count == 3
        assert [p.provider for p in result.providers] == ["brave", "exa"]
        assert result.best_provider is not None
        assert result.cache_hit is False
        assert result.cache_key == generate_cache_key("hypertension guidelines")
        assert result.query == "hypertension guidelines"
        assert result.total_search_time_ms >= 0

    @pytest.mark.asyncio
    async def test_state_sequence_on_miss(self, orchestrator, states):
        await orchestrator.search({"q": "hypertension guidelines"})

        assert states == [
            OrchestrationState.CACHE_CHECK,
            OrchestrationState.DISPATCHING,
            OrchestrationState.AGGREGATING,
            OrchestrationState.FILTERING,
            OrchestrationState.CACHING,
            OrchestrationState.DONE,
        ]

    @pytest.mark.asyncio
    async def test_accepts_request_model(self, orchestrator):
        result = await orchestrator.search(SearchRequest(q="hypertension guidelines"))
        assert len(result.results) == 3

    @pytest.mark.asyncio
    async def test_filters_and_pagination(self, orchestrator):
        result = await orchestrator.search(
            {
                "q": "hypertension guidelines",
                "filters": {"specialty": "cardiology", "limit": 1, "offset": 1},
            }
        )

        # e2 is nephrology; b1, b2 remain and the page holds the second one
        assert [r.id for r in result.results] == ["b2"]
        assert result.aggregated_count == 1

    @pytest.mark.asyncio
    async def test_non_aggregated_mode(self, orchestrator):
        result = await orchestrator.search(
            {"q": "hypertension guidelines", "aggregateResults": False}
        )

        providers = {r.provider for r in result.results}
        assert len(providers) == 1
        assert providers == {result.best_provider}
        assert result.duplicates_removed == 0

    @pytest.mark.asyncio
    async def test_provider_restriction(self, orchestrator, exa):
        result = await orchestrator.search({"q": "asthma", "providers": ["brave"]})

        assert [p.provider for p in result.providers] == ["brave"]
        assert exa.calls == 0

    @pytest.mark.asyncio
    async def test_long_query_dispatched(self, orchestrator, brave, exa):
        query = "hypertension " * 50

        result = await orchestrator.search({"q": query})

        assert brave.calls == 1
        assert exa.calls == 1
        assert result.query == query.strip()
        assert len(result.results) == 3

    @pytest.mark.asyncio
    async def test_malformed_provider_recorded_as_failure(self, brave):
        broken = FakeProvider("exa")
        broken.results = [{"title": "no id or url"}]
        dispatcher = Dispatcher(
            specs=[ProviderSpec(name="brave", priority=1), ProviderSpec(name="exa", priority=2)],
            clients={"brave": brave, "exa": broken},
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher)

        result = await orchestrator.search({"q": "hypertension guidelines"})

        assert [r.id for r in result.results] == ["b1", "b2"]
        failed = [p for p in result.providers if not p.success]
        assert [p.provider for p in failed] == ["exa"]
        assert failed[0].error.startswith("malformed payload:")


class TestCaching:
    """Cache interaction."""

    @pytest.mark.asyncio
    async def test_second_call_is_cache_hit(self, orchestrator, brave, exa, states):
        first = await orchestrator.search({"q": "hypertension guidelines"})
        states.clear()

        second = await orchestrator.search({"q": "Hypertension Guidelines "})

        assert second.cache_hit is True
        assert second.cache_key == first.cache_key
        assert [r.id for r in second.results] == [r.id for r in first.results]
        assert second.total_search_time_ms == first.total_search_time_ms
        assert brave.calls == 1
        assert exa.calls == 1
        assert states == [OrchestrationState.CACHE_CHECK, OrchestrationState.DONE]

    @pytest.mark.asyncio
    async def test_cache_holds_full_ranked_set(self, orchestrator, cache):
        request = {"q": "hypertension guidelines", "filters": {"limit": 2}}

        first = await orchestrator.search(request)
        entry = cache.peek(first.cache_key)
        second = await orchestrator.search(request)

        assert len(first.results) == 2
        assert len(entry.payload.results) == 3
        assert second.cache_hit is True
        assert [r.id for r in second.results] == ["b1", "b2"]
        assert second.aggregated_count == 2

    @pytest.mark.asyncio
    async def test_ttl_follows_query(self, orchestrator, cache):
        stable = await orchestrator.search({"q": "hypertension guidelines"})
        urgent = await orchestrator.search({"q": "breaking news outbreak"})

        assert cache.peek(stable.cache_key).ttl_seconds == 7200
        assert cache.peek(urgent.cache_key).ttl_seconds == 600

    @pytest.mark.asyncio
    async def test_works_without_cache(self, brave, exa):
        dispatcher = Dispatcher(
            specs=[ProviderSpec(name="brave"), ProviderSpec(name="exa", priority=2)],
            clients={"brave": brave, "exa": exa},
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher)

        await orchestrator.search({"q": "asthma"})
        result = await orchestrator.search({"q": "asthma"})

        assert result.cache_hit is False
        assert brave.calls == 2

    @pytest.mark.asyncio
    async def test_memory_backend_swept_before_lookup(self, orchestrator, cache):
        with patch.object(cache, "sweep_expired", wraps=cache.sweep_expired) as sweep:
            await orchestrator.search({"q": "asthma"})

        sweep.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_disk_backend_not_swept_per_request(self, brave, tmp_path):
        disk = DiskResultCache(cache_dir=str(tmp_path / "cache"), max_entries=10)
        dispatcher = Dispatcher(specs=[ProviderSpec(name="brave")], clients={"brave": brave})
        orchestrator = SearchOrchestrator(dispatcher=dispatcher, cache=disk)
        try:
            with patch.object(disk, "sweep_expired") as sweep:
                await orchestrator.search({"q": "asthma"})
                second = await orchestrator.search({"q": "asthma"})

            sweep.assert_not_called()
            assert second.cache_hit is True
        finally:
            disk.close()

    @pytest.mark.asyncio
    async def test_overlapping_searches_same_query(self, brave, exa, cache):
        brave.delay = 0.01
        dispatcher = Dispatcher(
            specs=[ProviderSpec(name="brave", priority=1), ProviderSpec(name="exa", priority=2)],
            clients={"brave": brave, "exa": exa},
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher, cache=cache)

        results = await asyncio.gather(
            *[orchestrator.search({"q": "hypertension guidelines"}) for _ in range(6)]
        )

        # all six miss before any write lands; the key ends up with one entry
        assert all(len(r.results) == 3 for r in results)
        assert len(cache) == 1
        stats = cache.get_stats()
        assert stats.hits + stats.misses == 6
        assert stats.sets == stats.misses

        followup = await orchestrator.search({"q": "hypertension guidelines"})
        assert followup.cache_hit is True
        assert [r.id for r in followup.results] == [r.id for r in results[-1].results]

    @pytest.mark.asyncio
    async def test_overlapping_searches_respect_capacity(self, brave, exa):
        cache = MemoryResultCache(max_entries=3)
        dispatcher = Dispatcher(
            specs=[ProviderSpec(name="brave", priority=1), ProviderSpec(name="exa", priority=2)],
            clients={"brave": brave, "exa": exa},
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher, cache=cache)

        await asyncio.gather(
            *[orchestrator.search({"q": f"condition {n}"}) for n in range(8)]
        )

        stats = cache.get_stats()
        assert len(cache) == 3
        assert stats.sets == 8
        assert stats.evictions == 5


class TestEmptyAggregation:
    """Every provider fails or returns nothing."""

    @pytest.mark.asyncio
    async def test_all_providers_time_out(self, cache, states):
        slow = {name: FakeProvider(name, [make_result("x", "https://a.org", 0.5)], delay=2)
                for name in ("brave", "exa", "perplexity")}
        dispatcher = Dispatcher(
            specs=[
                ProviderSpec(name=name, priority=i, timeout_seconds=0.05)
                for i, name in enumerate(slow)
            ],
            clients=slow,
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher, cache=cache, on_transition=states.append)

        result = await orchestrator.search({"q": "rare disease"})

        assert result.results == []
        assert result.aggregated_count == 0
        assert result.best_provider is None
        assert result.cache_hit is False
        assert len(result.providers) == 3
        assert all(not p.success for p in result.providers)
        assert all("timed out" in p.error for p in result.providers)
        assert len(cache) == 0
        assert OrchestrationState.CACHING not in states
        assert states[-1] == OrchestrationState.DONE

    @pytest.mark.asyncio
    async def test_empty_results_not_cached(self, cache):
        dispatcher = Dispatcher(
            specs=[ProviderSpec(name="brave")], clients={"brave": FakeProvider("brave")}
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher, cache=cache)

        result = await orchestrator.search({"q": "asthma"})

        assert result.results == []
        assert result.providers[0].success is True
        assert len(cache) == 0


class TestRejections:
    """Requests rejected before dispatch."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "request_body",
        [
            {"q": ""},
            {"q": "   "},
            {},
            {"q": "asthma", "filters": {"offset": -1}},
            {"q": "asthma", "filters": {"recency": "lastCentury"}},
        ],
    )
    async def test_invalid_request(self, orchestrator, brave, states, request_body):
        with pytest.raises(InvalidRequestError, match="Invalid search request"):
            await orchestrator.search(request_body)

        assert brave.calls == 0
        assert states == [OrchestrationState.CACHE_CHECK, OrchestrationState.FAILED]

    @pytest.mark.asyncio
    async def test_non_object_request(self, orchestrator):
        with pytest.raises(InvalidRequestError, match="JSON object"):
            await orchestrator.search(["asthma"])

    @pytest.mark.asyncio
    async def test_no_providers(self, orchestrator, states):
        with pytest.raises(NoProvidersAvailableError):
            await orchestrator.search({"q": "asthma", "providers": ["bing"]})

        assert states[-1] == OrchestrationState.FAILED
        assert OrchestrationState.AGGREGATING not in states


class TestAnalytics:
    """Search history emission."""

    @pytest.mark.asyncio
    async def test_record_emitted(self, brave, exa):
        sink = AsyncMock(spec=AnalyticsSink)
        dispatcher = Dispatcher(
            specs=[ProviderSpec(name="brave"), ProviderSpec(name="exa", priority=2)],
            clients={"brave": brave, "exa": exa},
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher, analytics=sink)

        result = await orchestrator.search({"q": "hypertension guidelines"})

        sink.record.assert_awaited_once()
        record = sink.record.await_args.args[0]
        assert isinstance(record, SearchRecord)
        assert record.query == "hypertension guidelines"
        assert record.providers_used == ["brave", "exa"]
        assert record.result_count == len(result.results)
        assert record.cache_key == result.cache_key

    @pytest.mark.asyncio
    async def test_sink_failure_absorbed(self, brave, exa):
        sink = AsyncMock(spec=AnalyticsSink)
        sink.record.side_effect = RuntimeError("database unavailable")
        dispatcher = Dispatcher(
            specs=[ProviderSpec(name="brave"), ProviderSpec(name="exa", priority=2)],
            clients={"brave": brave, "exa": exa},
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher, analytics=sink)

        result = await orchestrator.search({"q": "hypertension guidelines"})

        assert len(result.results) == 3

    @pytest.mark.asyncio
    async def test_cache_hit_also_recorded(self, brave, exa, cache):
        sink = AsyncMock(spec=AnalyticsSink)
        dispatcher = Dispatcher(
            specs=[ProviderSpec(name="brave"), ProviderSpec(name="exa", priority=2)],
            clients={"brave": brave, "exa": exa},
        )
        orchestrator = SearchOrchestrator(dispatcher=dispatcher, cache=cache, analytics=sink)

        await orchestrator.search({"q": "asthma"})
        await orchestrator.search({"q": "asthma"})

        assert sink.record.await_count == 2
        assert sink.record.await_args.args[0].cache_hit is True
