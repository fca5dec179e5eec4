"""
In-memory reference localization store.

Bundles are keyed by locale and namespace and merged deeply, so several
modules can contribute keys to the same namespace.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def deep_merge(parent: dict[str, Any], child: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Child values override parent values. For nested dicts, merge recursively.
    For other types (including lists), child replaces parent.

    Returns:
        Merged dictionary (new dict, inputs not modified).
    """
    result = parent.copy()
    for key, child_value in child.items():
        parent_value = result.get(key)
        if isinstance(parent_value, dict) and isinstance(child_value, dict):
            result[key] = deep_merge(parent_value, child_value)
        else:
            result[key] = child_value
    return result


class ResourceStore:
    """
    Localized text resources.

    Args:
        default_locale: Locale used when none is given and as lookup fallback
        locales: Supported locales (informational)
        default_namespace: Namespace used by ``translate`` keys without a prefix
    """

    def __init__(
        self,
        default_locale: str = "en",
        locales: list[str] | None = None,
        default_namespace: str = "common",
    ):
        self.default_locale = default_locale
        self.locales = list(locales or [default_locale])
        self.default_namespace = default_namespace
        self.locale = default_locale
        self._bundles: dict[str, dict[str, dict[str, Any]]] = {}

    def add_resource_bundle(
        self,
        locale: str,
        namespace: str,
        bundle: dict[str, Any],
        deep: bool = True,
    ) -> None:
        """
        Add keyed strings for a locale and namespace.

        Args:
            locale: Locale code (e.g., 'en')
            namespace: Bundle namespace, usually the module name
            bundle: Nested dict of strings
            deep: Merge into an existing bundle instead of replacing it
        """
        namespaces = self._bundles.setdefault(locale, {})
        existing = namespaces.get(namespace)
        if existing is not None and deep:
            namespaces[namespace] = deep_merge(existing, bundle)
        else:
            namespaces[namespace] = dict(bundle)
        logger.debug(f"Added resource bundle {locale}/{namespace}")

    def has_resource_bundle(self, locale: str, namespace: str) -> bool:
        return namespace in self._bundles.get(locale, {})

    def get_resource_bundle(self, locale: str, namespace: str) -> dict[str, Any] | None:
        return self._bundles.get(locale, {}).get(namespace)

    def get_resource(self, locale: str, namespace: str, key: str) -> Any | None:
        """
        Look up a dotted key, falling back to the default locale.

        Returns:
            The value, or None if neither locale has it
        """
        for candidate in dict.fromkeys([locale, self.default_locale]):
            value: Any = self._bundles.get(candidate, {}).get(namespace)
            for part in key.split("."):
                if not isinstance(value, dict):
                    value = None
                    break
                value = value.get(part)
            if value is not None:
                return value
        return None

    def translate(self, key: str, locale: str | None = None) -> str:
        """
        Translate ``"namespace:dotted.key"`` (namespace optional).

        Returns the key itself when nothing is found.
        """
        namespace, sep, path = key.partition(":")
        if not sep:
            namespace, path = self.default_namespace, key
        value = self.get_resource(locale or self.locale, namespace, path)
        return str(value) if value is not None else key

    def change_language(self, locale: str) -> None:
        self.locale = locale
