"""
Tests for the reference localization store.
"""

from modstage.i18n import ResourceStore
from modstage.i18n import deep_merge


def test_deep_merge_does_not_mutate():
    parent = {"a": {"x": 1, "y": 2}, "list": [1]}
    child = {"a": {"y": 3}, "list": [2]}

    merged = deep_merge(parent, child)

    assert merged == {"a": {"x": 1, "y": 3}, "list": [2]}
    assert parent == {"a": {"x": 1, "y": 2}, "list": [1]}


def test_bundles_merge_per_namespace():
    store = ResourceStore()
    store.add_resource_bundle("en", "shop", {"cart": {"title": "Cart"}})
    store.add_resource_bundle("en", "shop", {"cart": {"empty": "Nothing here"}})

    assert store.get_resource_bundle("en", "shop") == {"cart": {"title": "Cart", "empty": "Nothing here"}}
    assert store.has_resource_bundle("en", "shop")
    assert not store.has_resource_bundle("de", "shop")


def test_shallow_add_replaces():
    store = ResourceStore()
    store.add_resource_bundle("en", "shop", {"a": "1"})
    store.add_resource_bundle("en", "shop", {"b": "2"}, deep=False)

    assert store.get_resource_bundle("en", "shop") == {"b": "2"}


def test_translate_with_fallback():
    store = ResourceStore(default_locale="en", locales=["en", "de"])
    store.add_resource_bundle("en", "shop", {"cart": {"title": "Cart", "empty": "Empty"}})
    store.add_resource_bundle("de", "shop", {"cart": {"title": "Warenkorb"}})
    store.add_resource_bundle("en", "common", {"ok": "OK"})

    store.change_language("de")

    assert store.translate("shop:cart.title") == "Warenkorb"
    assert store.translate("shop:cart.empty") == "Empty"
    assert store.translate("ok") == "OK"
    assert store.translate("shop:cart.missing") == "shop:cart.missing"
    assert store.translate("shop:cart.title", locale="en") == "Cart"


def test_get_resource_through_non_dict():
    store = ResourceStore()
    store.add_resource_bundle("en", "shop", {"title": "Shop"})

    assert store.get_resource("en", "shop", "title.sub") is None
    assert store.get_resource("en", "other", "title") is None
