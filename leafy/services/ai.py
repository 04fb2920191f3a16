"""
AI clients for plant identification and the botanist chat.

Both calls go through a LiteLLM Router with Gemini as the primary model and
OpenAI as the fallback. Failures never raise into the request flow: callers
get (result, error_message) tuples and decide what to show.
"""

from __future__ import annotations
import json
import os
import re
import uuid
from typing import Tuple, Optional, Dict, Any, List

from flask import current_app, has_app_context
from leafy.services.reminders import now_ms
from leafy.utils.cache import cache_identification

# Most recent AI error (surfaced in logs to help diagnose model/key issues)
AI_LAST_ERROR: Optional[str] = None

# Track which AI provider was actually used for the last successful response
AI_LAST_PROVIDER: Optional[str] = None

# Cache for LiteLLM Router to avoid recreating on every request
_ROUTER_CACHE: Optional[object] = None

PRIMARY_MODEL = "primary-gemini"
FALLBACK_MODEL = "fallback-gpt"

CHAT_SYSTEM_PROMPT = (
    "You are 'Leafy', an expert botanist. Help users identify plants and troubleshoot care issues. "
    "You use Google Search to stay updated on local planting times and pests. "
    "Be professional, warm, and highly practical."
)

CHAT_EMPTY_REPLY = "I apologize, I couldn't find an answer for that right now."

IDENTIFY_PROMPT = """
Analyze this image. First, determine if the main subject is a real plant (living biological plant).
Identify it and provide comprehensive details in JSON format.

Fields required:
- isPlant: boolean. True if it is a plant, false if it is an inanimate object, animal, person, or unrecognized.
- commonName: The most widely used name (or object name if not a plant).
- scientificName: The Latin botanical name (or "N/A" if not a plant).
- description: A brief, poetic overview.
- healthStatus: A quick assessment (or "N/A" if not a plant).
- care: An object containing water, light, temperature, soil, fertilizer (strings),
  suggestedWaterDays and suggestedFertilizeDays (integers).
  (If isPlant is false, provide "N/A" for string fields and 0 for numeric fields).

Respond with the JSON object only.
"""

_REQUIRED_FIELDS = ("isPlant", "commonName", "scientificName", "description", "care")
_CARE_TEXT_FIELDS = ("water", "light", "temperature", "soil", "fertilizer")
_FENCE_PATTERN = re.compile(r"```(?:json)?\n?")


def _clear_router_cache():
    """Clear the router cache. Used for testing and when API keys change."""
    global _ROUTER_CACHE
    _ROUTER_CACHE = None


def _config_value(name: str) -> Optional[str]:
    value = os.getenv(name)
    if not value and has_app_context():
        value = current_app.config.get(name)
    return value or None


def _get_litellm_router():
    """
    Returns a LiteLLM Router configured with Gemini (primary) and OpenAI (fallback),
    or (None, error) if neither API key is available.

    PERFORMANCE: Router is cached to avoid recreation on every request.
    """
    global _ROUTER_CACHE

    if _ROUTER_CACHE is not None:
        return _ROUTER_CACHE, None

    gemini_key = _config_value("GEMINI_API_KEY")
    openai_key = _config_value("OPENAI_API_KEY")

    if not gemini_key and not openai_key:
        return None, "Neither GEMINI_API_KEY nor OPENAI_API_KEY configured"

    gemini_model = _config_value("AI_MODEL") or "gemini/gemini-2.5-flash"

    try:
        from litellm import Router

        model_list = []
        fallbacks = None

        if gemini_key:
            model_list.append({
                "model_name": PRIMARY_MODEL,
                "litellm_params": {
                    "model": gemini_model,
                    "api_key": gemini_key,
                    "temperature": 0.4,
                    "max_tokens": 2048,
                }
            })

        if openai_key:
            model_list.append({
                "model_name": FALLBACK_MODEL,
                "litellm_params": {
                    "model": "gpt-4o-mini",
                    "api_key": openai_key,
                    "temperature": 0.4,
                    "max_tokens": 2048,
                }
            })

        if gemini_key and openai_key:
            fallbacks = [{PRIMARY_MODEL: [FALLBACK_MODEL]}]

        router = Router(
            model_list=model_list,
            fallbacks=fallbacks,
            num_retries=2,
            timeout=45,
        )

        _ROUTER_CACHE = router
        return router, None
    except Exception as e:
        return None, f"LiteLLM Router initialization error: {e}"


def _models_in_order() -> List[str]:
    models = []
    if _config_value("GEMINI_API_KEY"):
        models.append(PRIMARY_MODEL)
    if _config_value("OPENAI_API_KEY"):
        models.append(FALLBACK_MODEL)
    return models


def _provider_of(resp, model_name: str) -> str:
    model_used = getattr(resp, "model", None) or model_name
    return "gemini" if "gemini" in model_used.lower() else "openai"


# ============================================================================
# Identification
# ============================================================================

def clean_json_response(text: Optional[str]) -> str:
    """Strip markdown code fences the model sometimes wraps JSON in."""
    if not text:
        return ""
    return _FENCE_PATTERN.sub("", text).replace("```", "").strip()


def _as_days(value: Any) -> int:
    try:
        days = int(value)
    except (TypeError, ValueError):
        return 0
    return max(days, 0)


def parse_identification(text: Optional[str], now: Optional[int] = None) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Turn the model's JSON answer into a plant record.

    Returns:
        (record, error_message)
    """
    cleaned = clean_json_response(text)
    if not cleaned:
        return None, "The AI returned an empty response."

    try:
        data = json.loads(cleaned)
    except ValueError:
        return None, "Failed to parse botanical data. Clearer photo needed."

    if not isinstance(data, dict) or any(field not in data for field in _REQUIRED_FIELDS):
        return None, "Failed to parse botanical data. Clearer photo needed."

    care = data.get("care")
    if not isinstance(care, dict):
        return None, "Failed to parse botanical data. Clearer photo needed."

    is_plant = bool(data.get("isPlant"))
    record = {
        "id": uuid.uuid4().hex[:9],
        "timestamp": now_ms() if now is None else now,
        "is_plant": is_plant,
        "common_name": str(data.get("commonName") or "Unknown"),
        "scientific_name": str(data.get("scientificName") or "N/A"),
        "description": str(data.get("description") or ""),
        "health_status": str(data.get("healthStatus") or "N/A"),
        "care": {
            **{field: str(care.get(field) or "N/A") for field in _CARE_TEXT_FIELDS},
            "suggested_water_days": _as_days(care.get("suggestedWaterDays")) if is_plant else 0,
            "suggested_fertilize_days": _as_days(care.get("suggestedFertilizeDays")) if is_plant else 0,
        },
    }
    return record, None


@cache_identification
def _identify_plant_cached(image_b64: str, mime_type: str = "image/jpeg") -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Call the model for one photo. Successful results are cached by image digest.
    """
    global AI_LAST_ERROR, AI_LAST_PROVIDER
    AI_LAST_ERROR = None
    AI_LAST_PROVIDER = None

    router, err = _get_litellm_router()
    if not router:
        AI_LAST_ERROR = err or "AI Router initialization failed"
        return None, AI_LAST_ERROR

    models = _models_in_order()
    model_to_use = models[0] if models else PRIMARY_MODEL

    try:
        resp = router.completion(
            model=model_to_use,
            messages=[{
                "role": "user",
                "content": [
                    {"type": "text", "text": IDENTIFY_PROMPT},
                    {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_b64}"}},
                ],
            }],
            response_format={"type": "json_object"},
        )
        text = resp.choices[0].message.content
    except Exception as e:
        AI_LAST_ERROR = str(e)[:300]
        return None, AI_LAST_ERROR

    record, parse_error = parse_identification(text)
    if parse_error:
        AI_LAST_ERROR = parse_error
        return None, parse_error

    AI_LAST_PROVIDER = _provider_of(resp, model_to_use)
    return record, None


def identify_plant(image_b64: str, mime_type: str = "image/jpeg") -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Identify the plant in a base64-encoded photo.

    Repeat photos are answered from the cache but always get a fresh id and
    timestamp, so each identification is its own journal entry.

    Args:
        image_b64: Base64 image payload (no data: prefix)
        mime_type: MIME type of the payload

    Returns:
        (plant_record, error_message)
    """
    record, error = _identify_plant_cached(image_b64, mime_type)
    if record is None:
        return None, error
    return {**record, "id": uuid.uuid4().hex[:9], "timestamp": now_ms()}, None


# ============================================================================
# Chat
# ============================================================================

def extract_sources(grounding_metadata: Any) -> List[Dict[str, str]]:
    """
    Pull web/maps citations out of Gemini grounding metadata.

    Accepts a single metadata dict or a list of them; chunks without a URI
    are dropped.
    """
    if not grounding_metadata:
        return []
    if isinstance(grounding_metadata, dict):
        grounding_metadata = [grounding_metadata]

    sources = []
    for metadata in grounding_metadata:
        if not isinstance(metadata, dict):
            continue
        chunks = metadata.get("groundingChunks") or metadata.get("grounding_chunks") or []
        if not isinstance(chunks, list):
            continue
        for chunk in chunks:
            if not isinstance(chunk, dict):
                continue
            web = chunk.get("web") or {}
            maps = chunk.get("maps") or {}
            uri = web.get("uri") or maps.get("uri") or ""
            if not uri:
                continue
            sources.append({
                "title": web.get("title") or maps.get("title") or "External Resource",
                "uri": uri,
            })
    return sources


def _grounding_metadata(resp) -> Any:
    metadata = getattr(resp, "vertex_ai_grounding_metadata", None)
    if metadata:
        return metadata
    hidden = getattr(resp, "_hidden_params", None) or {}
    return hidden.get("vertex_ai_grounding_metadata")


def chat_with_assistant(history: List[Dict[str, Any]]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Send the conversation to the assistant.

    Args:
        history: Ordered messages, each {"role": "user"|"assistant", "content": str}

    Returns:
        ({"text": str, "sources": [{"title", "uri"}, ...]}, None) or (None, error_message)
    """
    global AI_LAST_ERROR, AI_LAST_PROVIDER
    AI_LAST_ERROR = None
    AI_LAST_PROVIDER = None

    router, err = _get_litellm_router()
    if not router:
        AI_LAST_ERROR = err or "AI Router initialization failed"
        return None, AI_LAST_ERROR

    messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
    messages.extend(
        {"role": "assistant" if m.get("role") == "assistant" else "user", "content": str(m.get("content", ""))}
        for m in history
    )

    # Search grounding is a Gemini tool; the OpenAI fallback is called without it
    last_error = None
    for model_name in _models_in_order():
        kwargs = {"tools": [{"googleSearch": {}}]} if model_name == PRIMARY_MODEL else {}
        try:
            resp = router.completion(model=model_name, messages=messages, **kwargs)
        except Exception as e:
            last_error = str(e)[:300]
            continue

        text = (resp.choices[0].message.content or "").strip() or CHAT_EMPTY_REPLY
        AI_LAST_PROVIDER = _provider_of(resp, model_name)
        return {"text": text, "sources": extract_sources(_grounding_metadata(resp))}, None

    AI_LAST_ERROR = last_error or "No AI provider available"
    return None, AI_LAST_ERROR
