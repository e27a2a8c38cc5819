"""Unit tests for the Anthropic adapter."""

from unittest.mock import Mock

import anthropic
import httpx
import pytest

from dresscheck.errors import AIResponseInvalid, ProviderUnavailable
from dresscheck.models import EventContext, PoolItem, ProductType
from dresscheck.tools.ai_client import AIClient

ANTHROPIC_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def dress(item_id, name, brand="Zara", color="Black"):
    return PoolItem(
        id=item_id,
        name=name,
        brand=brand,
        color=color,
        type=ProductType(category="clothes", subcategory="dresses", display_name="Dresses"),
    )


def test_unconfigured_client_is_unavailable():
    client = AIClient()
    assert not client.available
    with pytest.raises(ProviderUnavailable):
        client.complete("hello")


def test_interpret_product(ai_factory):
    ai = ai_factory(
        'Here you go: {"name": "Vestido Negro", "imageUrl": "https://x/y.jpg", "color": "Negro",'
        ' "price": 45.95, "type": {"category": "clothes", "subcategory": "dresses"}}'
    )
    reply = ai.interpret_product("<html>...</html>", {"name": None}, "https://shop.es/vestido")

    assert reply.name == "Vestido Negro"
    assert reply.image_url == "https://x/y.jpg"
    assert reply.type == {"category": "clothes", "subcategory": "dresses"}
    assert ai.calls == 1


def test_interpret_product_truncates_html(ai_factory):
    ai = ai_factory('{"name": "Falda", "imageUrl": "https://x/f.jpg"}')
    ai.html_excerpt_chars = 100
    ai.interpret_product("A" * 5000, {}, "https://shop.es/falda")

    prompt = ai._client.messages.create.call_args.kwargs["messages"][0]["content"]
    assert "A" * 100 in prompt
    assert "A" * 101 not in prompt


def test_interpret_product_falls_back_to_basic_image(ai_factory):
    ai = ai_factory('{"name": "Falda midi"}')
    reply = ai.interpret_product("<html></html>", {"imageUrl": "https://x/basic.jpg"}, "https://shop.es/falda")
    assert reply.image_url == "https://x/basic.jpg"


@pytest.mark.parametrize("text", ["I could not find a product", '{"imageUrl": "https://x/y.jpg"}', '{"name": "Sin imagen"}'])
def test_interpret_product_invalid_replies(ai_factory, text):
    ai = ai_factory(text)
    with pytest.raises(AIResponseInvalid):
        ai.interpret_product("<html></html>", {}, "https://shop.es/x")


def test_provider_errors_become_provider_unavailable(ai_factory):
    ai = ai_factory(
        anthropic.APITimeoutError(request=ANTHROPIC_REQUEST),
        anthropic.APIStatusError(
            "overloaded",
            response=httpx.Response(529, request=ANTHROPIC_REQUEST),
            body=None,
        ),
    )
    with pytest.raises(ProviderUnavailable, match="timed out"):
        ai.complete("hello")
    with pytest.raises(ProviderUnavailable) as excinfo:
        ai.complete("hello")
    assert excinfo.value.status_code == 529


def test_empty_message_content(ai_factory):
    ai = ai_factory("unused")
    ai._client.messages.create.side_effect = None
    ai._client.messages.create.return_value = Mock(content=[])
    with pytest.raises(AIResponseInvalid):
        ai.complete("hello")


def test_first_text_block_is_used(ai_factory):
    ai = ai_factory("unused")
    ai._client.messages.create.side_effect = None
    ai._client.messages.create.return_value = Mock(
        content=[Mock(type="thinking", spec=["type", "thinking"]), Mock(type="text", text="hola")]
    )
    assert ai.complete("hello") == "hola"


def test_no_text_block_is_invalid(ai_factory):
    ai = ai_factory("unused")
    ai._client.messages.create.side_effect = None
    ai._client.messages.create.return_value = Mock(content=[Mock(type="tool_use", spec=["type", "name"])])
    with pytest.raises(AIResponseInvalid):
        ai.complete("hello")



def test_adjudicate_duplicates_drops_bad_entries(ai_factory):
    ai = ai_factory(
        '[{"itemIndex": 1, "confidence": 0.95, "isDuplicate": true, "reason": "same"},'
        ' {"itemIndex": 7, "confidence": 0.9, "isDuplicate": true, "reason": "unknown item"},'
        ' {"itemIndex": "two", "confidence": 0.5},'
        ' {"itemIndex": 2, "confidence": 0.3, "isDuplicate": false, "reason": "different"}]'
    )
    verdicts = ai.adjudicate_duplicates(dress("new", "Vestido Negro"), [dress("1", "Black Dress"), dress("2", "Red Dress")])

    assert [v.item_index for v in verdicts] == [1, 2]
    assert verdicts[0].is_duplicate
    assert verdicts[0].confidence == 0.95

    prompt = ai._client.messages.create.call_args.kwargs["messages"][0]["content"]
    assert '1. "Black Dress"' in prompt
    assert 'Brand: "Zara"' in prompt


def test_score_similarity(ai_factory):
    ai = ai_factory('```json\n[{"itemIndex": 1, "similarity": 0.8, "reason": "both maxi dresses"}]\n```')
    verdicts = ai.score_similarity("Vestido largo", [dress("1", "Maxi dress")])
    assert verdicts[0].similarity == 0.8
    assert verdicts[0].reason == "both maxi dresses"


def test_analyze_garment_image_sends_image_block(ai_factory):
    ai = ai_factory('{"name": "Vestido de lunares", "color": "Azul marino", "brand": null}')
    reply = ai.analyze_garment_image("image/png", "aGVsbG8=")

    assert reply.name == "Vestido de lunares"
    content = ai._client.messages.create.call_args.kwargs["messages"][0]["content"]
    assert content[0]["type"] == "image"
    assert content[0]["source"] == {"type": "base64", "media_type": "image/png", "data": "aGVsbG8="}


def test_check_status_without_key():
    status = AIClient().check_status()
    assert status["status"] == "unavailable"
    assert status["has_api_key"] is False


def test_check_status_caches_healthy_answer(ai_factory):
    ai = ai_factory("ok")
    assert ai.check_status()["status"] == "connected"
    assert ai.check_status()["status"] == "connected"
    assert ai._client.messages.create.call_count == 1
    ai._client.with_options.assert_called_with(timeout=5.0)


def test_check_status_reports_limited_on_failure(ai_factory):
    ai = ai_factory(anthropic.APITimeoutError(request=ANTHROPIC_REQUEST))
    status = ai.check_status()
    assert status["status"] == "limited"
    assert status["error"]


def test_suggest_alternatives_best_first(ai_factory):
    ai = ai_factory(
        '[{"type": "color_alternative", "title": "Mismo corte en verde", "priority": 3,'
        '  "item": {"name": "Vestido midi verde", "subcategory": "dresses", "color": "Green"}},'
        ' {"type": "alternative_style", "title": "Mono palazzo", "priority": 5, "searchTerms": ["mono", "palazzo"],'
        '  "item": {"name": "Mono palazzo", "category": "clothes", "subcategory": "jumpsuits"}},'
        ' {"title": "Sin artículo", "priority": 9}]'
    )
    event = EventContext(name="Boda de Ana", location="Sevilla")

    suggestions = ai.suggest_alternatives(dress("1", "Vestido midi negro"), [dress("2", "Bolso", color="Gold")], event)

    assert [s.item.name for s in suggestions] == ["Mono palazzo", "Vestido midi verde"]
    assert suggestions[0].search_terms == ["mono", "palazzo"]
    prompt = ai._client.messages.create.call_args.kwargs["messages"][0]["content"]
    assert '"Vestido midi negro"' in prompt
    assert '1. "Bolso"' in prompt
    assert "Sevilla" in prompt


def test_suggest_alternatives_keeps_five(ai_factory):
    entries = ", ".join(f'{{"priority": {i}, "item": {{"name": "Alternativa {i}"}}}}' for i in range(7))
    ai = ai_factory(f"[{entries}]")

    suggestions = ai.suggest_alternatives(dress("1", "Vestido"), [], EventContext())

    assert [s.priority for s in suggestions] == [6, 5, 4, 3, 2]


def test_suggest_alternatives_without_json(ai_factory):
    ai = ai_factory("Lo siento, no puedo ayudar con eso.")
    with pytest.raises(AIResponseInvalid):
        ai.suggest_alternatives(dress("1", "Vestido"), [], EventContext())
