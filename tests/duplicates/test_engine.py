"""Tests for the duplicate and similarity engine."""

from unittest.mock import Mock

import anthropic
import httpx

from dresscheck.cache import MemoryTTLCache
from dresscheck.config import Settings
from dresscheck.duplicates import DuplicateEngine
from dresscheck.models import MatchType, PoolItem, ProductRecord, ProductType

DRESS = ProductType(category="clothes", subcategory="dresses", display_name="Dresses")
SKIRT = ProductType(category="clothes", subcategory="skirts", display_name="Skirts")


def item(item_id, name, brand=None, color=None, product_type=None, owner=None):
    return PoolItem(id=item_id, name=name, brand=brand, color=color, type=product_type, owner=owner)


def timeout_error():
    return anthropic.APITimeoutError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))


NEW = item("n1", "Vestido midi satinado", "Zara", "Black", DRESS)
POOL = [
    item("p1", "Vestido satinado negro", "Zara", "Black", DRESS, owner="Lucía"),
    item("p2", "Vestido lencero", "Mango", "black", DRESS),
    item("p3", "Falda plisada", "Zara", "Black", SKIRT),
    item("p4", "Vestido midi satinado", "Zara", "Red", DRESS),
    item("p5", "Top de seda", "Mango", "Black", None),
]

VERDICTS = """```json
[
  {"itemIndex": 1, "confidence": 0.95, "isDuplicate": true, "reason": "Same satin midi dress"},
  {"itemIndex": 2, "confidence": 0.75, "isDuplicate": true, "reason": "Very close cut"},
  {"itemIndex": 3, "confidence": 0.65, "isDuplicate": true, "reason": "Same color only"}
]
```"""


def engine_with(ai, cache=None):
    return DuplicateEngine(ai, cache=cache, settings=Settings())


def test_prefilter_requires_color_and_brand_or_subcategory(offline_ai):
    selected = engine_with(offline_ai).prefilter(NEW, POOL)

    # p3 shares brand and color, p4 differs in color, p5 shares only color
    assert [candidate.id for candidate in selected] == ["p1", "p2", "p3"]


def test_prefilter_skips_the_item_itself_and_missing_values(offline_ai):
    colorless = item("n2", "Bolso", "Zara", None, None)
    pool = [NEW, item("p6", "Bolso", "Zara", None, None)]

    engine = engine_with(offline_ai)
    assert engine.prefilter(NEW, pool) == []
    assert engine.prefilter(colorless, pool) == []


def test_find_duplicates_classifies_by_confidence(ai_factory):
    engine = engine_with(ai_factory(VERDICTS))

    duplicates = engine.find_duplicates(NEW, POOL)

    assert [(d.item_b.id, d.match_type) for d in duplicates] == [
        ("p1", MatchType.EXACT),
        ("p2", MatchType.SIMILAR),
    ]
    assert duplicates[0].item_a == NEW
    assert duplicates[0].reason == "Same satin midi dress"


def test_no_candidates_means_no_ai_call(ai_factory):
    ai = ai_factory()
    lonely = item("n3", "Chaqueta vaquera", "Levi's", "Blue", None)

    assert engine_with(ai).find_duplicates(lonely, POOL) == []
    assert ai.calls == 0


def test_repeated_checks_are_cached(ai_factory):
    ai = ai_factory(VERDICTS)
    engine = engine_with(ai, cache=MemoryTTLCache())

    first = engine.find_duplicates(NEW, POOL)
    second = engine.find_duplicates(NEW, POOL)

    assert first == second
    assert ai._client.messages.create.call_count == 1


def test_provider_failure_degrades_to_empty_and_is_not_cached(ai_factory):
    ai = ai_factory(timeout_error(), VERDICTS)
    engine = engine_with(ai, cache=MemoryTTLCache())

    assert engine.find_duplicates(NEW, POOL) == []
    assert len(engine.find_duplicates(NEW, POOL)) == 2


def test_unreadable_verdicts_degrade_to_empty(ai_factory):
    engine = engine_with(ai_factory("Sorry, I can't compare these."))
    assert engine.find_duplicates(NEW, POOL) == []


def test_without_ai_no_duplicates(offline_ai):
    assert engine_with(offline_ai).find_duplicates(NEW, POOL) == []


def test_product_record_is_accepted(ai_factory):
    record = ProductRecord(
        name="Vestido midi satinado",
        image_url="https://x/y.jpg",
        brand="Zara",
        color="Black",
        type=DRESS,
        source_url="https://www.zara.com/es/es/vestido-p1.html",
    )
    duplicates = engine_with(ai_factory(VERDICTS)).find_duplicates(record, POOL)

    assert duplicates[0].item_a.id == "new"


def test_best_verdict_per_candidate_wins(ai_factory):
    reply = (
        '[{"itemIndex": 1, "confidence": 0.72, "isDuplicate": true},'
        ' {"itemIndex": 1, "confidence": 0.93, "isDuplicate": true},'
        ' {"itemIndex": 2, "confidence": 0.99, "isDuplicate": false}]'
    )
    duplicates = engine_with(ai_factory(reply)).find_duplicates(NEW, POOL)

    assert len(duplicates) == 1
    assert duplicates[0].confidence == 0.93
    assert duplicates[0].match_type == MatchType.EXACT


def test_find_similar_excludes_exact_names_and_low_scores(ai_factory):
    ai = ai_factory(
        '[{"itemIndex": 1, "similarity": 0.82, "reason": "Both satin dresses"},'
        ' {"itemIndex": 2, "similarity": 0.4}]'
    )
    engine = engine_with(ai)

    similar = engine.find_similar(NEW, POOL[:2] + [POOL[3]])

    assert [s.item.id for s in similar] == ["p1"]
    assert similar[0].similarity == 0.82
    prompt = ai._client.messages.create.call_args.kwargs["messages"][0]["content"]
    assert '"Vestido lencero"' in prompt
    assert prompt.count('"Vestido midi satinado"') == 1


def test_find_similar_never_raises(ai_factory):
    engine = engine_with(ai_factory(timeout_error()))
    assert engine.find_similar(NEW, POOL) == []


def test_similarity_pool_is_capped_to_closest_names(offline_ai):
    pool = [item(f"x{i}", f"Camiseta básica {i}") for i in range(30)]
    pool.append(item("close", "Vestido midi satinado largo"))

    capped = DuplicateEngine(offline_ai, settings=Settings(max_similarity_pool=5)).similarity_pool(NEW, pool)

    assert len(capped) == 5
    assert capped[0].id == "close"


def test_event_sweep_exact_and_partial_groups(offline_ai):
    items = [
        item("a", "Vestido Lola", color="Black"),
        item("b", "vestido lola", color="black"),
        item("c", "Vestido Lola", color="Red"),
        item("d", "Falda plisada", color="Black"),
    ]

    groups = engine_with(offline_ai).find_event_duplicates(items)

    assert [(g.match_type, [i.id for i in g.items]) for g in groups] == [
        (MatchType.EXACT, ["a", "b"]),
        (MatchType.PARTIAL, ["a", "b", "c"]),
    ]


def test_event_sweep_similar_pairs(ai_factory):
    items = [
        item("a", "Vestido midi satinado"),
        item("b", "Vestido midi de satén"),
    ]
    ai = ai_factory('[{"itemIndex": 1, "similarity": 0.8, "reason": "Same satin midi"}]')

    groups = engine_with(ai).find_event_duplicates(items)

    assert len(groups) == 1
    assert groups[0].match_type == MatchType.SIMILAR
    assert groups[0].name == "Vestido midi satinado / Vestido midi de satén"
    assert groups[0].similarity == 0.8
    assert ai.calls == 1


def test_engine_from_context(make_context):
    context = make_context()
    engine = DuplicateEngine.from_context(context)

    assert engine.cache is context.cache
    assert engine.settings is context.settings
    assert engine.find_duplicates(NEW, POOL) == []


def test_changing_a_result_does_not_change_the_cache(ai_factory):
    ai = ai_factory(VERDICTS, '[{"itemIndex": 1, "similarity": 0.82}]')
    engine = engine_with(ai, cache=MemoryTTLCache())

    first = engine.find_duplicates(NEW, POOL)
    first.clear()
    similar = engine.find_similar(NEW, POOL[:2])
    similar.clear()

    assert len(engine.find_duplicates(NEW, POOL)) == 2
    assert len(engine.find_similar(NEW, POOL[:2])) == 1
    assert ai.calls == 2


def test_reply_without_text_degrades_to_empty(ai_factory):
    ai = ai_factory()
    ai._client.messages.create.side_effect = None
    ai._client.messages.create.return_value = Mock(content=[Mock(type="tool_use", spec=["type", "name"])])
    engine = engine_with(ai)

    assert engine.find_duplicates(NEW, POOL) == []
    assert engine.find_similar(NEW, POOL) == []
