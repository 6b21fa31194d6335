from pagewright.document import load_page
from pagewright.resolution import deep_merge, resolve_effective_node, resolve_requirement_sources


NODE = {
    "id": "headline",
    "type": "atom",
    "atomType": "Text",
    "params": {"content": "base", "size": "lg"},
    "responsiveOverrides": {"mobile": {"id": "hijack", "params": {"content": "mobile"}}},
    "localeOverrides": {"fr-FR": {"params": {"content": "fr"}}},
}


def test_precedence_ladder_lowest_to_highest():
    patch = {"params": {"content": "live"}}
    assert resolve_effective_node(NODE)["params"]["content"] == "base"
    assert resolve_effective_node(NODE, live_patch=patch)["params"]["content"] == "live"
    assert resolve_effective_node(NODE, "mobile", None, patch)["params"]["content"] == "mobile"
    assert resolve_effective_node(NODE, "mobile", "fr-FR", patch)["params"]["content"] == "fr"


def test_untouched_keys_survive_the_merge():
    effective = resolve_effective_node(NODE, "mobile", "fr-FR")
    assert effective["params"]["size"] == "lg"
    assert effective["atomType"] == "Text"


def test_id_and_type_are_never_overridden():
    effective = resolve_effective_node(NODE, "mobile", None, {"type": "section", "id": "other"})
    assert effective["id"] == "headline"
    assert effective["type"] == "atom"


def test_unknown_breakpoint_or_locale_is_ignored():
    effective = resolve_effective_node(NODE, "watch", "de-DE")
    assert effective["params"]["content"] == "base"


def test_locale_override_falls_back_to_the_language():
    assert resolve_effective_node(NODE, None, "fr-CA")["params"]["content"] == "fr"
    assert resolve_effective_node(NODE, None, "FR-fr")["params"]["content"] == "fr"
    assert resolve_effective_node(NODE, None, "frr")["params"]["content"] == "base"


def test_frozen_document_node_is_not_mutated():
    page = load_page({"id": "p", "nodes": [NODE]})
    node = page.find("headline")
    effective = resolve_effective_node(node, "mobile", "fr-FR", {"params": {"content": "live"}})
    effective["params"]["content"] = "changed"
    assert node["params"]["content"] == "base"


def test_deep_merge_replaces_lists_and_merges_mappings():
    base = {"a": {"x": 1, "y": [1, 2]}, "b": 1}
    merged = deep_merge(base, {"a": {"y": [3]}, "c": 2})
    assert merged == {"a": {"x": 1, "y": [3]}, "b": 1, "c": 2}
    assert base["a"]["y"] == [1, 2]


def test_requirement_sources_resolve_against_global_scopes_only():
    requirements = [
        {
            "key": "reviews",
            "source": {"type": "apiEndpoint", "query": "/api/reviews/{{ page.slug }}", "variables": {"n": "{{ nodeData.x }}"}},
        },
        {"key": "related", "source": {"type": "rql", "queries": {"q": {"params": {"id": "{{ data.product.id }}"}}}}},
    ]
    context = {"page": {"slug": "lamp"}, "data": {"product": {"id": 7}}, "nodeData": {"x": 1}}
    resolved = resolve_requirement_sources(requirements, context)
    assert resolved[0]["source"]["query"] == "/api/reviews/lamp"
    assert resolved[0]["source"]["variables"] == {"n": None}
    assert resolved[1]["source"]["queries"]["q"]["params"]["id"] == 7
    assert requirements[0]["source"]["query"].startswith("/api/reviews/{{")
