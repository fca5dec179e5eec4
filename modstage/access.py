"""Reference access-control service backed by flag and permission maps."""

import logging

logger = logging.getLogger(__name__)


class AccessControl:
    """
    Feature flags and permissions of the current principal.

    A name counts as granted only when it maps to ``True``; unknown names are
    denied.
    """

    def __init__(
        self,
        feature_flags: dict[str, bool] | None = None,
        permissions: dict[str, bool] | None = None,
    ):
        self._feature_flags: dict[str, bool] = dict(feature_flags or {})
        self._permissions: dict[str, bool] = dict(permissions or {})

    @property
    def feature_flags(self) -> dict[str, bool]:
        return dict(self._feature_flags)

    @property
    def permissions(self) -> dict[str, bool]:
        return dict(self._permissions)

    def set_feature_flags(self, flags: dict[str, bool]) -> None:
        self._feature_flags = dict(flags)
        logger.debug(f"Feature flags set: {sorted(k for k, v in flags.items() if v)}")

    def set_permissions(self, permissions: dict[str, bool]) -> None:
        self._permissions = dict(permissions)
        logger.debug(f"Permissions set: {sorted(k for k, v in permissions.items() if v)}")

    def has_feature_flags(self, flags: list[str]) -> bool:
        return all(self._feature_flags.get(flag) is True for flag in flags)

    def has_permissions(self, permissions: list[str]) -> bool:
        return all(self._permissions.get(name) is True for name in permissions)
