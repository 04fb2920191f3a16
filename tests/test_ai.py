"""Tests for identification parsing, citation extraction and the AI call paths (no network)."""

import json
from types import SimpleNamespace
import pytest
from leafy.services import ai


def _model_json(**overrides):
    data = {
        "isPlant": True,
        "commonName": "Swiss Cheese Plant",
        "scientificName": "Monstera deliciosa",
        "description": "A climbing aroid with split leaves.",
        "healthStatus": "Healthy",
        "care": {
            "water": "When the top inch is dry",
            "light": "Bright indirect",
            "temperature": "18-27C",
            "soil": "Chunky aroid mix",
            "fertilizer": "Monthly in summer",
            "suggestedWaterDays": 7,
            "suggestedFertilizeDays": 30,
        },
    }
    data.update(overrides)
    return json.dumps(data)


def _response(text, model="gemini/gemini-2.5-flash", **attrs):
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], model=model, **attrs)


class FakeRouter:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def completion(self, **kwargs):
        self.calls.append(kwargs)
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class TestParseIdentification:
    def test_plant_record(self):
        record, error = ai.parse_identification(_model_json(), now=123)
        assert error is None
        assert record["timestamp"] == 123
        assert len(record["id"]) == 9
        assert record["is_plant"] is True
        assert record["common_name"] == "Swiss Cheese Plant"
        assert record["care"]["suggested_water_days"] == 7
        assert record["care"]["suggested_fertilize_days"] == 30
        assert record["care"]["soil"] == "Chunky aroid mix"

    def test_markdown_fences_stripped(self):
        record, error = ai.parse_identification("```json\n" + _model_json() + "\n```")
        assert error is None
        assert record["scientific_name"] == "Monstera deliciosa"

    def test_not_a_plant_zeroes_intervals(self):
        record, _ = ai.parse_identification(_model_json(isPlant=False, commonName="Coffee mug"))
        assert record["is_plant"] is False
        assert record["care"]["suggested_water_days"] == 0
        assert record["care"]["suggested_fertilize_days"] == 0

    @pytest.mark.parametrize("text", ["", None, "   "])
    def test_empty_response(self, text):
        assert ai.parse_identification(text) == (None, "The AI returned an empty response.")

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", json.dumps({"isPlant": True}), _model_json(care="water it")])
    def test_unusable_response(self, text):
        record, error = ai.parse_identification(text)
        assert record is None
        assert error == "Failed to parse botanical data. Clearer photo needed."

    def test_bad_day_values_become_zero(self):
        text = _model_json(care={"suggestedWaterDays": "often", "suggestedFertilizeDays": -4})
        record, _ = ai.parse_identification(text)
        assert record["care"]["suggested_water_days"] == 0
        assert record["care"]["suggested_fertilize_days"] == 0
        assert record["care"]["water"] == "N/A"


class TestExtractSources:
    def test_web_and_maps_chunks(self):
        metadata = {"groundingChunks": [
            {"web": {"uri": "https://a.example", "title": "A"}},
            {"maps": {"uri": "https://maps.example"}},
            {"web": {"uri": ""}},
            {"other": {}},
        ]}
        assert ai.extract_sources(metadata) == [
            {"title": "A", "uri": "https://a.example"},
            {"title": "External Resource", "uri": "https://maps.example"},
        ]

    def test_list_of_metadata(self):
        metadata = [{"groundingChunks": [{"web": {"uri": "https://a"}}]}, {"groundingChunks": [{"web": {"uri": "https://b"}}]}]
        assert [s["uri"] for s in ai.extract_sources(metadata)] == ["https://a", "https://b"]

    @pytest.mark.parametrize("metadata", [None, {}, [], {"groundingChunks": "nope"}, ["junk"]])
    def test_nothing_usable(self, metadata):
        assert ai.extract_sources(metadata) == []


class TestIdentifyPlant:
    def test_no_keys_configured(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        record, error = ai.identify_plant("aGVsbG8=")
        assert record is None
        assert "GEMINI_API_KEY" in error

    def test_success_is_cached_with_fresh_ids(self, monkeypatch):
        router = FakeRouter([_response(_model_json())])
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setattr(ai, "_get_litellm_router", lambda: (router, None))

        first, error = ai.identify_plant("aGVsbG8=")
        second, _ = ai.identify_plant("aGVsbG8=")

        assert error is None
        assert len(router.calls) == 1
        assert first["common_name"] == second["common_name"]
        assert first["id"] != second["id"]
        assert ai.AI_LAST_PROVIDER == "gemini"
        content = router.calls[0]["messages"][0]["content"]
        assert content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")

    def test_failure_not_cached(self, monkeypatch):
        router = FakeRouter([RuntimeError("503 overloaded"), _response(_model_json())])
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setattr(ai, "_get_litellm_router", lambda: (router, None))

        record, error = ai.identify_plant("aGVsbG8=")
        assert record is None
        assert "503" in error
        assert ai.AI_LAST_ERROR == error

        record, error = ai.identify_plant("aGVsbG8=")
        assert error is None
        assert len(router.calls) == 2


class TestChatWithAssistant:
    def test_gemini_gets_search_tool_and_sources(self, monkeypatch):
        metadata = {"groundingChunks": [{"web": {"uri": "https://extension.example", "title": "Extension"}}]}
        router = FakeRouter([_response("Repot in spring.", vertex_ai_grounding_metadata=[metadata])])
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(ai, "_get_litellm_router", lambda: (router, None))

        result, error = ai.chat_with_assistant([{"role": "user", "content": "When to repot?"}])

        assert error is None
        assert result == {"text": "Repot in spring.", "sources": [{"title": "Extension", "uri": "https://extension.example"}]}
        call = router.calls[0]
        assert call["tools"] == [{"googleSearch": {}}]
        assert call["messages"][0]["role"] == "system"
        assert "Leafy" in call["messages"][0]["content"]

    def test_falls_back_to_openai(self, monkeypatch):
        router = FakeRouter([RuntimeError("gemini down"), _response("Try misting.", model="gpt-4o-mini")])
        monkeypatch.setenv("GEMINI_API_KEY", "g")
        monkeypatch.setenv("OPENAI_API_KEY", "o")
        monkeypatch.setattr(ai, "_get_litellm_router", lambda: (router, None))

        result, error = ai.chat_with_assistant([{"role": "user", "content": "Brown tips?"}])

        assert error is None
        assert result["text"] == "Try misting."
        assert "tools" not in router.calls[1]
        assert ai.AI_LAST_PROVIDER == "openai"

    def test_empty_reply_becomes_apology(self, monkeypatch):
        router = FakeRouter([_response("")])
        monkeypatch.setenv("GEMINI_API_KEY", "g")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(ai, "_get_litellm_router", lambda: (router, None))

        result, _ = ai.chat_with_assistant([{"role": "user", "content": "?"}])
        assert result["text"] == ai.CHAT_EMPTY_REPLY

    def test_all_providers_fail(self, monkeypatch):
        router = FakeRouter([RuntimeError("boom")])
        monkeypatch.setenv("GEMINI_API_KEY", "g")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(ai, "_get_litellm_router", lambda: (router, None))

        result, error = ai.chat_with_assistant([{"role": "user", "content": "?"}])
        assert result is None
        assert error == "boom"
