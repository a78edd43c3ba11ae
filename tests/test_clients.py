"""
Tests de los clientes de proveedores externos
Se reemplaza la capa HTTP (requests / SDK de OpenAI) con unittest.mock
"""

import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import requests
from openai import OpenAIError

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'app'))

from config.settings import (
    AppSettings, AppConfig, DatabaseConfig, DiscoveryConfig, FirecrawlConfig,
    LoggingConfig, MercadoPagoConfig, OpenAIConfig, PerplexityConfig, RedditConfig
)
from infrastructure.errors import FirecrawlError, LLMError, PaymentProviderError, PerplexityError
from infrastructure.firecrawl_client import FirecrawlClient
from infrastructure.hackernews_client import HackerNewsClient
from infrastructure.llm_client import OpenAILLMClient
from infrastructure.mercadopago_client import MercadoPagoClient
from infrastructure.perplexity_client import PerplexityClient
from infrastructure.reddit_client import RedditClient


def fake_response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = json_data if json_data is not None else {}
    response.text = text
    return response


def chat_completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def stream_chunk(content, empty=False):
    if empty:
        return SimpleNamespace(choices=[])
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class TestPerplexityClient(unittest.TestCase):
    """Tests de PerplexityClient"""

    def setUp(self):
        self.client = PerplexityClient(PerplexityConfig(api_key="pplx-test-key", timeout_seconds=30))

    def test_requires_api_key(self):
        with self.assertRaises(ValueError):
            PerplexityClient(PerplexityConfig(api_key=""))

    @patch("infrastructure.perplexity_client.requests.post")
    def test_parses_fenced_json(self, mock_post):
        content = '```json\n{"problems": [{"rank": 1, "description": "Facturas"}]}\n```'
        mock_post.return_value = fake_response(json_data={"choices": [{"message": {"content": content}}]})

        data = self.client.search_pain_points("contabilidad")

        assert data["problems"][0]["description"] == "Facturas"
        kwargs = mock_post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer pplx-test-key"
        assert kwargs["json"]["messages"][1]["content"] == "Tema: contabilidad"
        assert kwargs["timeout"] == 30

    @patch("infrastructure.perplexity_client.requests.post")
    def test_timeout(self, mock_post):
        mock_post.side_effect = requests.Timeout("lento")
        with self.assertRaises(PerplexityError) as ctx:
            self.client.search_pain_points("crm")
        assert "timed out after 30 seconds" in str(ctx.exception)

    @patch("infrastructure.perplexity_client.requests.post")
    def test_http_error(self, mock_post):
        mock_post.return_value = fake_response(status_code=500, text="down")
        with self.assertRaises(PerplexityError) as ctx:
            self.client.search_pain_points("crm")
        assert ctx.exception.status_code == 500
        assert str(ctx.exception) == "Perplexity API error (500): down"

    @patch("infrastructure.perplexity_client.requests.post")
    def test_invalid_json_content(self, mock_post):
        mock_post.return_value = fake_response(json_data={"choices": [{"message": {"content": "sin json"}}]})
        with self.assertRaises(PerplexityError):
            self.client.search_pain_points("crm")


class TestRedditClient(unittest.TestCase):
    """Tests de RedditClient con una sesión mock"""

    def setUp(self):
        self.session = MagicMock()
        self.client = RedditClient(RedditConfig(user_agent="VetaTest/1.0"), session=self.session)

    def test_sets_user_agent(self):
        self.session.headers.update.assert_called_once_with({"User-Agent": "VetaTest/1.0"})

    def test_search_parses_listing(self):
        self.session.get.return_value = fake_response(json_data={"data": {"children": [
            {"kind": "t3", "data": {"id": "abc", "title": "CRM lento", "permalink": "/r/crm/comments/abc/",
                                    "selftext": "Tarda mucho", "num_comments": 4}},
        ]}})

        posts = self.client.search("crm reddit", limit=5)

        assert [p.url for p in posts] == ["https://www.reddit.com/r/crm/comments/abc/"]
        assert posts[0].num_comments == 4
        args, kwargs = self.session.get.call_args
        assert args[0] == "https://www.reddit.com/search.json"
        assert kwargs["params"]["q"] == "crm reddit"
        assert kwargs["params"]["limit"] == 5

    def test_search_empty_on_http_error(self):
        self.session.get.return_value = fake_response(status_code=429)
        assert self.client.search("crm") == []

    def test_search_empty_on_timeout(self):
        self.session.get.side_effect = requests.Timeout("lento")
        assert self.client.search("crm") == []

    def test_comments_only_t1(self):
        self.session.get.return_value = fake_response(json_data=[
            {"data": {"children": []}},
            {"data": {"children": [
                {"kind": "t1", "data": {"body": "Me pasa igual", "author": "ana", "score": 3}},
                {"kind": "more", "data": {"children": ["x"]}},
                {"kind": "t1", "data": {"body": "Uso Excel"}},
            ]}},
        ])

        comments = self.client.get_comments("https://www.reddit.com/r/crm/comments/abc/", limit=10)

        assert [(c.body, c.author) for c in comments] == [("Me pasa igual", "ana"), ("Uso Excel", "[deleted]")]
        assert self.session.get.call_args.args[0] == "https://www.reddit.com/r/crm/comments/abc.json"

    def test_comments_empty_on_unexpected_shape(self):
        self.session.get.return_value = fake_response(json_data={"error": 404})
        assert self.client.get_comments("https://www.reddit.com/r/crm/comments/abc/") == []


class TestHackerNewsClient(unittest.TestCase):
    """Tests de HackerNewsClient"""

    @patch("infrastructure.hackernews_client.requests.get")
    def test_hits_are_limited(self, mock_get):
        hits = [{"objectID": str(i), "title": f"Ask HN {i}", "story_text": "texto"} for i in range(8)]
        mock_get.return_value = fake_response(json_data={"hits": hits})

        results = HackerNewsClient(RedditConfig()).search_stories("crm")

        assert len(results) == 5
        assert results[0].url == "https://news.ycombinator.com/item?id=0"
        assert results[0].content == "Ask HN 0. texto"
        assert mock_get.call_args.kwargs["params"] == {"query": "crm", "tags": "story"}

    @patch("infrastructure.hackernews_client.requests.get")
    def test_http_error_propagates(self, mock_get):
        response = fake_response(status_code=503)
        response.raise_for_status.side_effect = requests.HTTPError("503")
        mock_get.return_value = response

        with self.assertRaises(requests.RequestException):
            HackerNewsClient(RedditConfig()).search_stories("crm")


class TestFirecrawlClient(unittest.TestCase):
    """Tests de FirecrawlClient"""

    def setUp(self):
        self.client = FirecrawlClient(FirecrawlConfig(api_key="fc-test-key"))

    def test_requires_api_key(self):
        with self.assertRaises(ValueError):
            FirecrawlClient(FirecrawlConfig(api_key=""))

    @patch("infrastructure.firecrawl_client.requests.post")
    def test_search_results(self, mock_post):
        mock_post.return_value = fake_response(json_data={"data": [
            {"url": "https://reddit.com/r/a/1", "title": "Hilo", "markdown": "# Queja"},
        ]})

        results = self.client.search_discussions("crm")

        assert [(r.url, r.content) for r in results] == [("https://reddit.com/r/a/1", "# Queja")]
        assert mock_post.call_args.args[0] == "https://api.firecrawl.dev/v1/search"
        assert mock_post.call_args.kwargs["json"]["query"] == "crm reddit"

    @patch("infrastructure.firecrawl_client.requests.post")
    def test_scrape_fallback_when_search_fails(self, mock_post):
        mock_post.side_effect = [
            fake_response(status_code=402, text="sin créditos"),
            fake_response(json_data={"success": True, "data": {"markdown": "# Resultados"}}),
        ]

        results = self.client.search_discussions("crm lento")

        assert len(results) == 1
        assert results[0].url == "https://www.reddit.com/search/?q=crm+lento&type=link"
        assert results[0].content == "# Resultados"
        assert mock_post.call_args.args[0] == "https://api.firecrawl.dev/v1/scrape"

    @patch("infrastructure.firecrawl_client.requests.post")
    def test_empty_when_both_strategies_fail(self, mock_post):
        mock_post.side_effect = [
            fake_response(json_data={"data": []}),
            fake_response(json_data={"success": False}),
        ]
        assert self.client.search_discussions("crm") == []

    @patch("infrastructure.firecrawl_client.requests.post")
    def test_scrape_discussions_skips_failures(self, mock_post):
        mock_post.side_effect = [
            fake_response(status_code=500, text="error"),
            fake_response(json_data={"success": True, "data": {"markdown": "# Caso"}}),
        ]
        assert self.client.scrape_discussions(["https://a.com", "https://b.com"]) == ["# Caso"]

    @patch("infrastructure.firecrawl_client.requests.post")
    def test_non_ok_raises_typed_error(self, mock_post):
        mock_post.return_value = fake_response(status_code=401, text="unauthorized")
        with self.assertRaises(FirecrawlError) as ctx:
            self.client.scrape("https://a.com")
        assert ctx.exception.status_code == 401


class TestMercadoPagoClient(unittest.TestCase):
    """Tests de MercadoPagoClient"""

    def setUp(self):
        self.client = MercadoPagoClient(MercadoPagoConfig(access_token="APP_USR-test"))

    def test_requires_token(self):
        with self.assertRaises(ValueError):
            MercadoPagoClient(MercadoPagoConfig(access_token=""))

    @patch("infrastructure.mercadopago_client.requests.post")
    def test_create_preference(self, mock_post):
        mock_post.return_value = fake_response(status_code=201, json_data={"id": "pref-1", "init_point": "https://mp"})

        result = self.client.create_preference({"items": []})

        assert result["id"] == "pref-1"
        assert mock_post.call_args.args[0] == "https://api.mercadopago.com/checkout/preferences"
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer APP_USR-test"

    @patch("infrastructure.mercadopago_client.requests.get")
    def test_get_payment(self, mock_get):
        mock_get.return_value = fake_response(json_data={"id": 42, "status": "approved"})
        assert self.client.get_payment("42")["status"] == "approved"
        assert mock_get.call_args.args[0] == "https://api.mercadopago.com/v1/payments/42"

    @patch("infrastructure.mercadopago_client.requests.get")
    def test_get_payment_not_found(self, mock_get):
        mock_get.return_value = fake_response(status_code=404, json_data={"message": "Payment not found"})
        with self.assertRaises(PaymentProviderError) as ctx:
            self.client.get_payment("999")
        assert ctx.exception.status_code == 404
        assert "Payment not found" in str(ctx.exception)

    @patch("infrastructure.mercadopago_client.requests.post")
    def test_connection_error_is_typed(self, mock_post):
        mock_post.side_effect = requests.Timeout("lento")
        with self.assertRaises(PaymentProviderError):
            self.client.create_preference({"items": []})


class TestOpenAILLMClient(unittest.TestCase):
    """Tests de OpenAILLMClient con un SDK falso"""

    def setUp(self):
        self.sdk = MagicMock()
        self.client = OpenAILLMClient(
            OpenAIConfig(api_key="sk-test", model="gpt-4o", coach_model="gpt-4o-mini"),
            client=self.sdk
        )

    def test_requires_api_key(self):
        with self.assertRaises(ValueError):
            OpenAILLMClient(OpenAIConfig(api_key=""))

    def test_complete_json(self):
        self.sdk.chat.completions.create.return_value = chat_completion('```json\n{"queries": ["a"]}\n```')

        data = self.client.complete_json("sistema", "usuario", max_tokens=100)

        assert data == {"queries": ["a"]}
        kwargs = self.sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["max_tokens"] == 100
        assert "temperature" not in kwargs

    def test_empty_content(self):
        self.sdk.chat.completions.create.return_value = chat_completion(None)
        with self.assertRaises(LLMError):
            self.client.complete_json("s", "u")

    def test_sdk_error_is_wrapped(self):
        self.sdk.chat.completions.create.side_effect = OpenAIError("rate limit")
        with self.assertRaises(LLMError):
            self.client.complete_json("s", "u")

    def test_stream_chat(self):
        self.sdk.chat.completions.create.return_value = iter([
            stream_chunk("Hola"), stream_chunk(None, empty=True), stream_chunk(None), stream_chunk(" crack"),
        ])

        chunks = list(self.client.stream_chat([{"role": "user", "content": "hola"}]))

        assert chunks == ["Hola", " crack"]
        kwargs = self.sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["stream"] is True


class TestSettingsValidation(unittest.TestCase):
    """Tests de AppSettings.validate"""

    def make_settings(self, openai=None, perplexity=None, discovery=None):
        return AppSettings(
            database=DatabaseConfig(),
            openai=openai or OpenAIConfig(api_key="sk-test"),
            perplexity=perplexity or PerplexityConfig(),
            firecrawl=FirecrawlConfig(),
            reddit=RedditConfig(),
            mercadopago=MercadoPagoConfig(),
            discovery=discovery or DiscoveryConfig(),
            app=AppConfig(),
            logging=LoggingConfig(),
        )

    def test_valid(self):
        self.make_settings().validate()

    def test_lists_every_problem(self):
        settings = self.make_settings(
            openai=OpenAIConfig(api_key=""),
            perplexity=PerplexityConfig(api_key="", timeout_seconds=0),
            discovery=DiscoveryConfig(heartbeat_seconds=0),
        )
        with self.assertRaises(ValueError) as ctx:
            settings.validate()

        message = str(ctx.exception)
        assert "OPENAI_API_KEY o PERPLEXITY_API_KEY" in message
        assert "PERPLEXITY_TIMEOUT_SECONDS" in message
        assert "DISCOVERY_HEARTBEAT_SECONDS" in message

    def test_perplexity_alone_is_enough(self):
        self.make_settings(
            openai=OpenAIConfig(api_key=""),
            perplexity=PerplexityConfig(api_key="pplx"),
        ).validate()


if __name__ == '__main__':
    unittest.main()
