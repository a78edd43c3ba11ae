"""
Tests para services.discovery_service
Camino Perplexity (con heartbeat) y pipeline manual Reddit -> HN -> LLM
"""

import unittest
from unittest.mock import MagicMock

import requests

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'app'))

from config.settings import DiscoveryConfig
from domain.enums import StepStatus, StreamEventType
from domain.models import RedditComment, RedditPost, SearchResult
from infrastructure.errors import PerplexityError
from infrastructure.llm_client import MockLLMClient
from infrastructure.perplexity_client import MockResearchClient
from infrastructure.reddit_client import MockRedditClient
from services.analysis_service import AnalysisService
from services.discovery_service import DiscoveryService, deduplicate_by_url


class FakeHackerNews:
    """HN de prueba: devuelve resultados fijos o lanza el error indicado"""

    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.queries = []

    def search_stories(self, query, limit=5):
        self.queries.append((query, limit))
        if self.error:
            raise self.error
        return self.results[:limit]


def make_post(post_id, num_comments=0):
    return RedditPost(
        id=post_id,
        title=f"Post {post_id}",
        url=f"https://www.reddit.com/r/test/comments/{post_id}/",
        selftext=f"Cuerpo {post_id}",
        num_comments=num_comments,
    )


async def collect(service, query):
    return [event async for event in service.run(query)]


PROBLEMS = {"problems": [
    {"rank": 2, "description": "Conciliación bancaria manual"},
    {"rank": 1, "description": "Facturas que se pierden"},
]}


class TestResearchEnginePath(unittest.IsolatedAsyncioTestCase):
    """Tests del camino con Perplexity"""

    def make_service(self, research_client, heartbeat=10.0):
        return DiscoveryService(
            DiscoveryConfig(heartbeat_seconds=heartbeat),
            MockRedditClient(),
            FakeHackerNews(),
            research_client=research_client,
        )

    async def test_event_sequence(self):
        research = MockResearchClient(result=PROBLEMS)
        events = await collect(self.make_service(research), "contabilidad pymes")

        label = 'Analizando la web en busca de puntos de dolor sobre "contabilidad pymes"...'
        assert events[0].step == "Inicializando Motor de Investigación Global..."
        assert events[0].status == StepStatus.COMPLETED
        assert (events[1].step, events[1].status) == (label, StepStatus.ACTIVE)
        assert (events[-3].step, events[-3].status) == (label, StepStatus.COMPLETED)
        assert events[-2].step == "Análisis completo. Generando reporte..."

        result = events[-1]
        assert result.type == StreamEventType.RESULT
        assert [p["rank"] for p in result.data["problems"]] == [1, 2]
        assert research.topics == ["contabilidad pymes"]

    async def test_heartbeat_while_waiting(self):
        research = MockResearchClient(result=PROBLEMS, delay_seconds=0.3)
        events = await collect(self.make_service(research, heartbeat=0.05), "crm")

        active = [e for e in events if e.status == StepStatus.ACTIVE]
        # El paso activo inicial más al menos un heartbeat
        assert len(active) >= 3
        assert len({e.step for e in active}) == 1
        assert events[-1].type == StreamEventType.RESULT

    async def test_error_becomes_single_error_line(self):
        research = MockResearchClient(error=PerplexityError("Perplexity API error (500): down"))
        events = await collect(self.make_service(research), "crm")

        errors = [e for e in events if e.type == StreamEventType.ERROR]
        assert len(errors) == 1
        assert events[-1].error == "Failed to process discovery: Perplexity API error (500): down"
        assert not any(e.type == StreamEventType.RESULT for e in events)


class TestManualPipeline(unittest.IsolatedAsyncioTestCase):
    """Tests del pipeline Reddit + LLM"""

    def make_service(self, reddit, llm, hn=None, config=None):
        return DiscoveryService(
            config or DiscoveryConfig(),
            reddit,
            hn or FakeHackerNews(),
            analysis_service=AnalysisService(llm),
        )

    async def test_full_pipeline(self):
        reddit = MockRedditClient(
            posts_by_query={
                "crm lento reddit": [make_post("a", num_comments=2), make_post("b")],
                "crm reddit": [make_post("a", num_comments=2), make_post("c")],
            },
            comments_by_url={
                "https://www.reddit.com/r/test/comments/a/": [
                    RedditComment(body="A mí también", author="ana")
                ],
            },
        )
        llm = MockLLMClient(responses=[
            {"queries": ["crm lento", "crm reddit"]},
            {"signals": [{"quote": "El CRM tarda 10 segundos"}]},
            PROBLEMS,
        ])
        events = await collect(self.make_service(reddit, llm), "crm")

        assert sorted(reddit.searched) == ["crm lento reddit", "crm reddit"]
        steps = [e.step for e in events if e.type == StreamEventType.PROGRESS]
        assert 'Generating research strategy for "crm"...' in steps
        assert "Found 3 unique discussion threads" in steps
        assert "Analysis complete. Generating report..." in steps

        # El extractor recibe el corpus con los comentarios del post
        corpus = llm.calls[1]["user"]
        assert "--- TOP COMMENTS ---\n[Comment by ana]: A mí también" in corpus
        assert corpus.count("Source: https://www.reddit.com/r/test/comments/a/") == 1

        # El analista recibe las señales, no el corpus
        assert "El CRM tarda 10 segundos" in llm.calls[2]["user"]
        assert events[-1].type == StreamEventType.RESULT
        assert events[-1].data["problems"][0]["description"] == "Facturas que se pierden"

    async def test_corpus_synthesized_when_no_signals(self):
        reddit = MockRedditClient(posts_by_query={"crm reddit": [make_post("a")]})
        llm = MockLLMClient(responses=[{"queries": ["crm"]}, {"signals": []}, PROBLEMS])
        events = await collect(self.make_service(reddit, llm), "crm")

        assert "Source: https://www.reddit.com/r/test/comments/a/" in llm.calls[2]["user"]
        assert events[-1].type == StreamEventType.RESULT

    async def test_failed_sub_query_does_not_abort(self):
        reddit = MockRedditClient(
            posts_by_query={"crm reddit": [make_post("a")]},
            failing_queries=["crm caro reddit"],
        )
        llm = MockLLMClient(responses=[{"queries": ["crm caro", "crm reddit"]}, {"signals": []}, PROBLEMS])
        events = await collect(self.make_service(reddit, llm), "crm")

        assert 'Found 1 for "crm reddit"' in [e.step for e in events]
        assert events[-1].type == StreamEventType.RESULT

    async def test_comments_only_for_first_posts(self):
        posts = [make_post(str(i), num_comments=5) for i in range(5)]
        reddit = MockRedditClient(posts_by_query={"crm reddit": posts})
        llm = MockLLMClient(responses=[{"queries": ["crm reddit"]}, {"signals": []}, PROBLEMS])
        await collect(self.make_service(reddit, llm), "crm")

        assert len(reddit.comment_requests) == 3

    async def test_firecrawl_results_are_merged(self):
        firecrawl = MagicMock()
        firecrawl.search_discussions.return_value = [
            SearchResult(url="https://foro.com/hilo", title="Hilo externo", content="Odio mi CRM")
        ]
        reddit = MockRedditClient(posts_by_query={"crm reddit": [make_post("a")]})
        llm = MockLLMClient(responses=[{"queries": ["crm"]}, {"signals": []}, PROBLEMS])
        service = DiscoveryService(
            DiscoveryConfig(), reddit, FakeHackerNews(),
            analysis_service=AnalysisService(llm), firecrawl_client=firecrawl,
        )

        events = await collect(service, "crm")

        firecrawl.search_discussions.assert_called_once_with("crm")
        assert 'Found 2 for "crm"' in [e.step for e in events]
        assert "Source: https://foro.com/hilo" in llm.calls[1]["user"]

    async def test_hacker_news_fallback(self):
        hn = FakeHackerNews(results=[
            SearchResult(url="https://news.ycombinator.com/item?id=1", title="Ask HN: CRMs", content="c")
        ])
        llm = MockLLMClient(responses=[{"queries": ["crm"]}, {"signals": []}, PROBLEMS])
        events = await collect(self.make_service(MockRedditClient(), llm, hn=hn), "crm")

        assert hn.queries == [("crm", 5)]
        assert "[LAST RESORT] Found 1 Hacker News discussions." in [e.step for e in events]
        assert events[-1].type == StreamEventType.RESULT

    async def test_nothing_found(self):
        hn = FakeHackerNews(error=requests.ConnectionError("sin red"))
        llm = MockLLMClient(responses=[{"queries": ["crm"]}])
        events = await collect(self.make_service(MockRedditClient(), llm, hn=hn), "crm")

        assert events[-1].type == StreamEventType.ERROR
        assert events[-1].error == "No relevant discussions found. Try a broader topic."
        # No se llegó a extraer ni sintetizar
        assert len(llm.calls) == 1

    def test_requires_some_engine(self):
        with self.assertRaises(ValueError):
            DiscoveryService(DiscoveryConfig(), MockRedditClient(), FakeHackerNews())


class TestDeduplicate(unittest.TestCase):
    """Tests de deduplicate_by_url"""

    def test_last_wins_first_position_kept(self):
        results = [
            SearchResult(url="a", title="a1"),
            SearchResult(url="b", title="b1"),
            SearchResult(url="a", title="a2"),
        ]
        unique = deduplicate_by_url(results)
        assert [r.url for r in unique] == ["a", "b"]
        assert unique[0].title == "a2"


if __name__ == '__main__':
    unittest.main()
