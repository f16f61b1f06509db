"""Tests for result merging, deduplication, ranking and best-provider selection."""

import pytest

from medsearch.models.search import ProviderResponse, SearchResult
from medsearch.services.aggregator import Aggregator
from medsearch.services.enrichment import ResultEnricher
from medsearch.utils.exceptions import EnrichmentError


def make_result(id, url, score, provider="brave", **kwargs):
    return SearchResult(
        id=id, title=id, url=url, provider=provider, relevance_score=score, **kwargs
    )


def make_response(provider, results, success=True, search_time_ms=500, error=None):
    return ProviderResponse(
        provider=provider,
        success=success,
        results=results,
        total_count=len(results),
        search_time_ms=search_time_ms,
        error=error,
    )


class FailingEnricher(ResultEnricher):
    async def enrich(self, results, query):
        raise EnrichmentError("classification service unavailable")


class ReverseScoreEnricher(ResultEnricher):
    async def enrich(self, results, query):
        return [
            r.model_copy(update={"relevance_score": round(1 - r.relevance_score, 2)})
            for r in results
        ]


@pytest.fixture
def aggregator():
    return Aggregator()


@pytest.fixture
def hypertension_responses():
    brave = make_response(
        "brave",
        [
            make_result("b1", "https://www.ahajournals.org/doi/HYP.65", 0.9),
            make_result("b2", "https://www.acc.org/guidelines/hypertension", 0.8),
        ],
    )
    exa = make_response(
        "exa",
        [
            make_result("e1", "https://www.ahajournals.org/doi/HYP.65/?ref=exa", 0.95, provider="exa"),
            make_result("e2", "https://www.nejm.org/doi/full/10.1056", 0.7, provider="exa"),
        ],
    )
    return [brave, exa]


class TestMerge:
    """Tests for Aggregator.merge."""

    def test_first_occurrence_wins(self, aggregator, hypertension_responses):
        merged, duplicates = aggregator.merge(hypertension_responses)

        assert [r.id for r in merged] == ["b1", "b2", "e2"]
        assert duplicates == 1

    def test_failed_responses_ignored(self, aggregator):
        responses = [
            make_response("brave", [], success=False, error="timeout"),
            make_response("exa", [make_result("e1", "https://a.org/1", 0.5, provider="exa")]),
        ]

        merged, duplicates = aggregator.merge(responses)

        assert [r.id for r in merged] == ["e1"]
        assert duplicates == 0

    def test_duplicates_within_one_provider(self, aggregator):
        responses = [
            make_response(
                "brave",
                [
                    make_result("b1", "https://a.org/x", 0.5),
                    make_result("b2", "https://A.org/x/", 0.6),
                ],
            )
        ]

        merged, duplicates = aggregator.merge(responses)

        assert [r.id for r in merged] == ["b1"]
        assert duplicates == 1

    def test_idempotent(self, aggregator, hypertension_responses):
        merged, _ = aggregator.merge(hypertension_responses)

        again, duplicates = aggregator.merge([make_response("merged", merged)])

        assert again == merged
        assert duplicates == 0

    def test_no_canonical_url_repeats(self, aggregator, hypertension_responses):
        from medsearch.utils.url import normalize_url

        merged, _ = aggregator.merge(hypertension_responses)
        keys = [normalize_url(r.url) for r in merged]
        assert len(keys) == len(set(keys))


class TestRank:
    def test_descending(self):
        results = [
            make_result("a", "https://a.org", 0.2),
            make_result("b", "https://b.org", 0.9),
            make_result("c", "https://c.org", 0.5),
        ]
        assert [r.id for r in Aggregator.rank(results)] == ["b", "c", "a"]

    def test_stable_for_ties(self):
        results = [
            make_result("first", "https://a.org", 0.5),
            make_result("top", "https://b.org", 0.9),
            make_result("second", "https://c.org", 0.5),
            make_result("third", "https://d.org", 0.5),
        ]
        assert [r.id for r in Aggregator.rank(results)] == ["top", "first", "second", "third"]


class TestAggregate:
    @pytest.mark.asyncio
    async def test_merges_and_ranks(self, aggregator, hypertension_responses):
        ranked, duplicates = await aggregator.aggregate(
            hypertension_responses, "hypertension guidelines"
        )

        assert [r.id for r in ranked] == ["b1", "b2", "e2"]
        assert duplicates == 1

    @pytest.mark.asyncio
    async def test_enrichment_failure_falls_back(self, hypertension_responses):
        aggregator = Aggregator(enricher=FailingEnricher())

        ranked, duplicates = await aggregator.aggregate(
            hypertension_responses, "hypertension guidelines"
        )

        assert [r.relevance_score for r in ranked] == [0.9, 0.8, 0.7]
        assert duplicates == 1

    @pytest.mark.asyncio
    async def test_enrichment_scores_drive_ranking(self, hypertension_responses):
        aggregator = Aggregator(enricher=ReverseScoreEnricher())

        ranked, _ = await aggregator.aggregate(hypertension_responses, "q")

        assert [r.id for r in ranked] == ["e2", "b2", "b1"]

    @pytest.mark.asyncio
    async def test_all_failed(self, aggregator):
        responses = [
            make_response("brave", [], success=False, error="down"),
            make_response("exa", [], success=False, error="down"),
        ]

        ranked, duplicates = await aggregator.aggregate(responses, "q")

        assert ranked == []
        assert duplicates == 0


class TestBestProvider:
    def test_score_components(self, aggregator):
        response = make_response(
            "brave",
            [make_result(f"b{i}", f"https://a.org/{i}", 0.5) for i in range(12)],
            search_time_ms=1000,
        )

        score = aggregator.score_provider(response)

        assert score.breadth_score == 40
        assert score.speed_score == 29
        assert score.quality_score == 15
        assert score.total_score == 84

    def test_slow_provider_gets_no_speed_points(self, aggregator):
        response = make_response(
            "perplexity", [make_result("p1", "https://a.org", 1.0)], search_time_ms=45_000
        )
        assert aggregator.score_provider(response).speed_score == 0

    def test_breadth_beats_quality(self, aggregator):
        wide = make_response(
            "brave",
            [make_result(f"b{i}", f"https://a.org/{i}", 0.5) for i in range(10)],
            search_time_ms=1000,
        )
        narrow = make_response(
            "exa",
            [make_result(f"e{i}", f"https://b.org/{i}", 0.9, provider="exa") for i in range(3)],
            search_time_ms=100,
        )

        assert aggregator.select_best([narrow, wide]) == "brave"

    def test_tie_goes_to_first(self, aggregator):
        results = [make_result("x", "https://a.org", 0.5)]
        responses = [make_response("exa", results), make_response("brave", results)]

        assert aggregator.select_best(responses) == "exa"

    def test_none_when_no_eligible(self, aggregator):
        responses = [
            make_response("brave", [], success=False, error="down"),
            make_response("exa", []),
        ]
        assert aggregator.select_best(responses) is None

    @pytest.mark.asyncio
    async def test_from_best_provider(self, aggregator):
        wide = make_response(
            "brave",
            [make_result(f"b{i}", f"https://a.org/{i}", 0.1 * i) for i in range(6)],
        )
        narrow = make_response("exa", [make_result("e1", "https://a.org/1", 0.9, provider="exa")])

        results = await aggregator.from_best_provider([narrow, wide], "q")

        assert [r.id for r in results] == ["b5", "b4", "b3", "b2", "b1", "b0"]

    @pytest.mark.asyncio
    async def test_from_best_provider_empty(self, aggregator):
        responses = [make_response("brave", [], success=False, error="down")]
        assert await aggregator.from_best_provider(responses, "q") == []
