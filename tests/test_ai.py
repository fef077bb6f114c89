"""
Tests for the AI helpers. The OpenAI client is always mocked.
"""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import openai
import pytest

from api.handlers.ai import (
    DEFAULT_COLOR_SCHEME,
    AIResponseFormatError,
    AIServiceError,
    OpenAIContentService,
)
from api.utils import get_ai_cache_stats


pytestmark = pytest.mark.django_db


def completion(payload):
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def fake_client(*payloads):
    client = MagicMock()
    client.chat.completions.create.side_effect = [completion(p) for p in payloads]
    return client


@pytest.fixture
def use_client():
    """Routes every OpenAIContentService built by the views to the given fake client."""
    def _use(client):
        return patch("api.ai_views.AIAPIView.get_service", lambda self: OpenAIContentService(client=client))
    return _use


class TestOpenAIContentService:

    def test_generate_content_uses_json_mode(self, settings):
        settings.OPENAI_MODEL = "gpt-test"
        client = fake_client({"headline": "Hi", "subheadline": "There", "ctaText": "Go"})

        result = OpenAIContentService(client=client).generate_content("hero", "A bakery")

        assert result["headline"] == "Hi"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.7
        assert "headline" in kwargs["messages"][0]["content"]

    def test_results_are_cached(self):
        client = fake_client({"heading": "One", "content": "Text"})
        service = OpenAIContentService(client=client)

        first = service.generate_content("text", "same prompt")
        second = service.generate_content("text", "same prompt")

        assert first == second
        assert client.chat.completions.create.call_count == 1
        stats = get_ai_cache_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_invalid_json_raises_format_error(self):
        service = OpenAIContentService(client=fake_client("not json"))
        with pytest.raises(AIResponseFormatError):
            service.generate_layout("landing page")

    def test_provider_error_is_wrapped(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.OpenAIError("quota exceeded")

        with pytest.raises(AIServiceError):
            OpenAIContentService(client=client).generate_style("modern")

    def test_missing_api_key(self, settings):
        settings.OPENAI_API_KEY = ""
        with pytest.raises(AIServiceError):
            OpenAIContentService().generate_font_pairings()

    def test_suggestions_use_higher_temperature(self):
        client = fake_client({"suggestions": []})
        OpenAIContentService(client=client).generate_suggestions("layout", "context")
        assert client.chat.completions.create.call_args.kwargs["temperature"] == 0.8

    def test_unknown_modify_action(self):
        with pytest.raises(ValueError):
            OpenAIContentService(client=MagicMock()).modify_content("text", "translate")


class TestAIEndpoints:

    def test_generate_content_adds_readability(self, user_client, website, use_client):
        client = fake_client({"heading": "About", "content": "We bake fresh bread every morning. Come visit us soon."})

        with use_client(client):
            response = user_client.post("/api/ai/generate/content", {
                "websiteId": str(website.pk),
                "pageId": "home",
                "elementType": "text",
                "prompt": "About our bakery",
            }, format="json")

        assert response.status_code == 200
        assert response.data["heading"] == "About"
        assert "content" in response.data["readability"]
        assert response.data["readability"]["content"]["wordCount"] > 0

    def test_other_users_website_is_404(self, other_client, website, use_client):
        with use_client(fake_client()):
            response = other_client.post("/api/ai/generate/layout", {
                "websiteId": str(website.pk),
                "pageId": "home",
                "prompt": "Landing page",
            }, format="json")
        assert response.status_code == 404

    def test_missing_fields_are_400(self, user_client):
        response = user_client.post("/api/ai/generate/content", {"prompt": "x"}, format="json")
        assert response.status_code == 400
        assert "websiteId" in response.data["error"]

    def test_provider_failure_is_502(self, user_client, website, use_client):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.OpenAIError("down")

        with use_client(client):
            response = user_client.post("/api/ai/generate/style", {
                "websiteId": str(website.pk),
                "prompt": "Calm and warm",
            }, format="json")

        assert response.status_code == 502
        assert response.data["success"] is False

    def test_style_uses_saved_settings_as_context(self, user_client, website, use_client):
        client = fake_client({"colors": {"primary": "#000000"}, "fonts": {"heading": "Lora", "body": "Inter"}})

        with use_client(client):
            response = user_client.post("/api/ai/generate/style", {
                "websiteId": str(website.pk),
                "prompt": "Elegant",
            }, format="json")

        assert response.status_code == 200
        system_prompt = client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "#111111" in system_prompt

    def test_modify_change_style_requires_style(self, user_client):
        response = user_client.post("/api/ai/modify/content", {"content": "Hello", "action": "changeStyle"}, format="json")
        assert response.status_code == 400

    def test_modify_unknown_action(self, user_client):
        response = user_client.post("/api/ai/modify/content", {"content": "Hello", "action": "translate"}, format="json")
        assert response.status_code == 400

    def test_modify_content(self, user_client, use_client):
        with use_client(fake_client({"content": "Hello there, friend."})):
            response = user_client.post("/api/ai/modify/content", {"content": "Hello", "action": "expand"}, format="json")

        assert response.status_code == 200
        assert response.data["content"] == "Hello there, friend."

    def test_suggestions(self, user_client, website, use_client):
        suggestions = [{"id": "1", "type": "text", "title": "Bold", "content": {"heading": "Bake"}}]
        with use_client(fake_client({"suggestions": suggestions})):
            response = user_client.get(f"/api/ai/suggestions/{website.pk}/home")

        assert response.status_code == 200
        assert response.data["suggestions"] == suggestions

    def test_suggestions_unknown_page(self, user_client, website, use_client):
        with use_client(fake_client()):
            response = user_client.get(f"/api/ai/suggestions/{website.pk}/nope", {"type": "layout"})
        assert response.status_code == 404

    def test_color_scheme_falls_back(self, user_client, use_client):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.OpenAIError("down")

        with use_client(client):
            response = user_client.post("/api/ai/generate-color-scheme", {"industry": "coffee"}, format="json")

        assert response.status_code == 200
        assert response.data["fallback"] is True
        assert response.data["primary"] == DEFAULT_COLOR_SCHEME["primary"]

    def test_font_pairings(self, user_client, use_client):
        pairings = [{"heading": "Lora", "body": "Inter"}]
        with use_client(fake_client({"pairings": pairings})):
            response = user_client.post("/api/ai/generate-font-pairings", {}, format="json")

        assert response.status_code == 200
        assert response.data["pairings"] == pairings

    def test_ai_throttle(self, user_client, use_client, monkeypatch):
        from api.throttles import AIRequestThrottle
        monkeypatch.setattr(AIRequestThrottle, "rate", "2/15m")

        with use_client(fake_client({"pairings": []}, {"pairings": []})):
            statuses = [user_client.post("/api/ai/generate-font-pairings", {"style": s}, format="json").status_code for s in ("a", "b", "c")]

        assert statuses == [200, 200, 429]
