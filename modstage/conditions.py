"""
Load condition checks.

Feature flags and permissions are answered by the access-control service in
the bootstrap context. The checks fail closed: no service, or a service that
raises, means the condition is not met.
"""

import inspect
import logging
from typing import Any

from .context import ACCESS_CONTROL
from .context import BootstrapContext
from .models import ModuleDescriptor
from .status import StatusTracker

logger = logging.getLogger(__name__)


async def _ask(ctx: BootstrapContext, method: str, names: list[str]) -> bool:
    access = ctx.get_service(ACCESS_CONTROL)
    if access is None:
        logger.debug(f"No access control registered; denying {method}({names})")
        return False

    query = getattr(access, method, None)
    if query is None:
        logger.debug(f"Access control has no {method}(); denying {names}")
        return False

    try:
        result: Any = query(names)
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.debug(f"Access control {method}({names}) raised: {e}")
        return False
    return bool(result)


async def check_feature_flags(flags: list[str], ctx: BootstrapContext) -> bool:
    """True if no flags are required or every flag is enabled."""
    if not flags:
        return True
    return await _ask(ctx, "has_feature_flags", flags)


async def check_permissions(permissions: list[str], ctx: BootstrapContext) -> bool:
    """True if no permissions are required or the principal holds them all."""
    if not permissions:
        return True
    return await _ask(ctx, "has_permissions", permissions)


class ConditionValidator:
    """Evaluates a module's load condition against access control and load status."""

    def __init__(self, status: StatusTracker):
        self.status = status

    async def evaluate_load_conditions(
        self, module: ModuleDescriptor, ctx: BootstrapContext
    ) -> list[str]:
        """
        Collect the unmet parts of a module's load condition.

        Dependencies count as met only once they are loaded.

        Returns:
            Human-readable reasons; empty when the module may load
        """
        if module.load_condition is None:
            return []

        reasons: list[str] = []
        flags = module.feature_flags
        if flags and not await check_feature_flags(flags, ctx):
            reasons.append(f"feature flags not enabled: {', '.join(flags)}")

        permissions = module.access_permissions
        if permissions and not await check_permissions(permissions, ctx):
            reasons.append(f"permissions not granted: {', '.join(permissions)}")

        for dep in module.dependencies:
            if not self.status.is_loaded(dep):
                reasons.append(f"dependency {dep} not loaded")

        return reasons

    async def check_load_conditions(self, module: ModuleDescriptor, ctx: BootstrapContext) -> bool:
        return not await self.evaluate_load_conditions(module, ctx)

    async def check_gating_conditions(self, module: ModuleDescriptor, ctx: BootstrapContext) -> bool:
        """Flags and permissions only; dependency status is ignored."""
        if module.load_condition is None:
            return True
        if not await check_feature_flags(module.feature_flags, ctx):
            return False
        return await check_permissions(module.access_permissions, ctx)
