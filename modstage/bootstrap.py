"""
Bootstrap pipeline.

An ordered list of async steps, each taking the shared BootstrapContext and
returning it. Steps run one after another; the first one that raises aborts
the pipeline and the error reaches the caller.

Default order:

1. setup_api_client    - HTTP client for the configured API
2. setup_routing       - router with the initial routes
3. setup_localization  - localization store
4. setup_services      - access control, mock service, API client in the locator
5. load_manifest       - startup manifest: flags, permissions, extra modules
6. setup_module_loader - register modules, run INIT modules
7. finalize_routes     - preload routes, router post-init, menu, router deps

NORMAL modules load afterwards, once the host has rendered: ``Bootstrap.start()``
does both in one call.
"""

import logging
from collections.abc import Awaitable
from collections.abc import Callable

from . import events
from .access import AccessControl
from .client import ApiClient
from .config import BootstrapConfig
from .context import ACCESS_CONTROL
from .context import API_CLIENT
from .context import MOCK_SERVICE
from .context import BootstrapContext
from .exceptions import ConfigurationError
from .exceptions import ManifestError
from .hooks import HookRegistry
from .i18n import ResourceStore
from .interfaces import ConfigResolver
from .loader import ModuleLoader
from .manifest import load_manifest_file
from .manifest import to_descriptors
from .mocks import MockService
from .models import LoadReport
from .models import ModuleConfig
from .models import ModuleDescriptor
from .routing import RouterService

logger = logging.getLogger(__name__)

BootstrapStep = Callable[[BootstrapContext], Awaitable[BootstrapContext]]


async def setup_api_client(ctx: BootstrapContext) -> BootstrapContext:
    if ctx.api_client is None and ctx.config.api_url:
        ctx.api_client = ApiClient(ctx.config.api_url)
    elif ctx.api_client is None and ctx.config.manifest_url:
        raise ConfigurationError("api_url in application config is not defined")
    return ctx


async def setup_routing(ctx: BootstrapContext) -> BootstrapContext:
    if ctx.router is None:
        ctx.router = RouterService(ctx.config.initial_routes, ctx.config.app_prefix)
    return ctx


async def setup_localization(ctx: BootstrapContext) -> BootstrapContext:
    if ctx.i18n is None:
        ctx.i18n = ResourceStore(ctx.config.default_locale, ctx.config.locales)
    return ctx


async def setup_services(ctx: BootstrapContext) -> BootstrapContext:
    """Register shared services unless the host already provided them."""
    if not ctx.has_service(ACCESS_CONTROL):
        ctx.register_service(ACCESS_CONTROL, AccessControl())
    if ctx.is_development and not ctx.has_service(MOCK_SERVICE):
        ctx.register_service(MOCK_SERVICE, MockService())
    if ctx.api_client is not None and not ctx.has_service(API_CLIENT):
        ctx.register_service(API_CLIENT, ctx.api_client)
    return ctx


async def load_manifest(ctx: BootstrapContext) -> BootstrapContext:
    """
    Read the startup manifest, if one is configured.

    Applies its feature flags and permissions to access control, merges its
    params into the context and queues its modules for registration.

    Raises:
        ManifestError: Unreadable manifest or status 'error'
        ManifestValidationError: Manifest failed validation
    """
    config = ctx.config
    catalog_names = set(ctx.catalog) if ctx.catalog else None

    if config.manifest_path:
        manifest = load_manifest_file(config.manifest_path, catalog_names)
    elif config.manifest_url:
        manifest = await ctx.api_client.fetch_manifest(config.manifest_url, catalog_names)
    else:
        return ctx

    if not manifest.ok:
        raise ManifestError("Startup manifest reported status 'error'")

    access = ctx.get_service(ACCESS_CONTROL)
    if access is not None and hasattr(access, "set_feature_flags"):
        access.set_feature_flags(manifest.data.features)
        access.set_permissions(manifest.data.permissions)

    ctx.params.update(manifest.data.params)
    discovered = to_descriptors(manifest, ctx.catalog, ctx.config_resolver)
    ctx.modules.extend(discovered)
    logger.info(f"Startup manifest: {len(discovered)} module(s) discovered")
    return ctx


async def setup_module_loader(ctx: BootstrapContext) -> BootstrapContext:
    """Register every queued module and run the INIT phase."""
    loader = ctx.module_loader or ModuleLoader(module_timeout=ctx.config.module_timeout)
    loader.bind(ctx)

    await loader.add_modules(ctx.modules)
    ctx.modules = []
    await loader.init_init_modules()
    return ctx


async def finalize_routes(ctx: BootstrapContext) -> BootstrapContext:
    loader = ctx.module_loader
    router = ctx.router
    await loader.preload_routes()

    if ctx.config.router_post_init is not None:
        router.post_init(ctx.config.router_post_init)

    ctx.menu = router.build_menu()
    router.set_dependencies(
        module_loader=loader,
        i18n=ctx.i18n,
        api_client=ctx.api_client,
        menu=ctx.menu,
    )
    return ctx


DEFAULT_STEPS: list[BootstrapStep] = [
    setup_api_client,
    setup_routing,
    setup_localization,
    setup_services,
    load_manifest,
    setup_module_loader,
    finalize_routes,
]


class Bootstrap:
    """
    Runs the bootstrap steps over a shared context.

    Args:
        config: Bootstrap configuration
        modules: Statically known module descriptors
        catalog: Local module configs for manifest entries without a remote entry
        resolver: Resolves remote entries of manifest modules
        steps: Replaces the default step list
        hooks: Lifecycle event registry (a new one if omitted)
    """

    def __init__(
        self,
        config: BootstrapConfig,
        modules: list[ModuleDescriptor] | None = None,
        catalog: dict[str, ModuleConfig] | None = None,
        resolver: ConfigResolver | None = None,
        steps: list[BootstrapStep] | None = None,
        hooks: HookRegistry | None = None,
    ):
        self.ctx = BootstrapContext(
            config=config,
            hooks=hooks or HookRegistry(),
            modules=list(modules or []),
            catalog=dict(catalog or {}),
            config_resolver=resolver,
        )
        self.steps = list(DEFAULT_STEPS if steps is None else steps)

    async def run(self) -> BootstrapContext:
        """
        Execute every step in order.

        Returns:
            The finished context

        Raises:
            Whatever the failing step raised, after logging it
        """
        ctx = self.ctx
        for index, step in enumerate(self.steps):
            name = getattr(step, "__name__", repr(step))
            logger.debug(f"[bootstrap:step] {name}")
            await ctx.hooks.emit(events.BOOTSTRAP_STEP, {"step": name, "index": index})
            try:
                ctx = await step(ctx)
            except Exception as e:
                logger.error(f"Bootstrap step '{name}' failed: {e}")
                await ctx.hooks.emit(events.BOOTSTRAP_FAILED, {"step": name, "error": str(e)})
                raise

        self.ctx = ctx
        logger.info("[bootstrap:complete]")
        await ctx.hooks.emit(events.BOOTSTRAP_COMPLETE, {"steps": len(self.steps)})
        return ctx

    async def start(self) -> LoadReport:
        """Run the pipeline, then load NORMAL modules."""
        ctx = await self.run()
        if ctx.module_loader is None:
            raise ConfigurationError("Bootstrap finished without a module loader")
        return await ctx.module_loader.load_normal_modules()

    async def aclose(self) -> None:
        if self.ctx.api_client is not None:
            await self.ctx.api_client.aclose()
