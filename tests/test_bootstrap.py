"""
Tests for the bootstrap pipeline.
"""

import json
import textwrap
from unittest.mock import Mock

import httpx
import pytest
from modstage import events
from modstage.bootstrap import Bootstrap
from modstage.bootstrap import setup_api_client
from modstage.client import ApiClient
from modstage.config import BootstrapConfig
from modstage.context import ACCESS_CONTROL
from modstage.context import API_CLIENT
from modstage.context import MOCK_SERVICE
from modstage.exceptions import ConfigurationError
from modstage.exceptions import InitHookError
from modstage.exceptions import ManifestError
from modstage.exceptions import ManifestValidationError
from modstage.models import ModuleConfig
from modstage.models import Route
from modstage.models import RouteMenu
from modstage.testing import EventRecorder
from modstage.testing import make_context
from modstage.testing import make_module


def manifest_document(modules, features=None, permissions=None, status="ok"):
    return {
        "status": status,
        "data": {
            "features": features or {},
            "permissions": permissions or {},
            "params": {"tenant": "acme"},
            "modules": modules,
        },
    }


class TestPipeline:
    @pytest.mark.asyncio
    async def test_static_modules(self):
        order = []
        modules = [
            make_module("core", load_type="init", on_init=lambda ctx: order.append("core")),
            make_module(
                "shop",
                routes=[Route(name="shop", path="/shop", menu=RouteMenu(text="Shop", sort_order=2))],
                on_init=lambda ctx: order.append("shop"),
            ),
            make_module(
                "billing",
                load_type="lazy",
                routes=[Route(name="billing", path="/billing", menu=RouteMenu(text="Billing", sort_order=1))],
            ),
        ]
        bootstrap = Bootstrap(BootstrapConfig(environment="development"), modules=modules)

        report = await bootstrap.start()
        ctx = bootstrap.ctx

        assert order == ["core", "shop"]
        assert report.loaded == ["shop"]
        assert ctx.module_loader.is_init_modules_loaded
        assert not ctx.module_loader.is_module_loaded("billing")
        assert [item.text for item in ctx.menu] == ["Billing", "Shop"]
        assert ctx.router.dependencies["module_loader"] is ctx.module_loader
        assert ctx.has_service(ACCESS_CONTROL)
        assert ctx.has_service(MOCK_SERVICE)
        assert ctx.modules == []

    @pytest.mark.asyncio
    async def test_step_failure_aborts(self):
        recorder = EventRecorder()
        modules = [make_module("core", load_type="init", on_init=Mock(side_effect=RuntimeError("boom")))]
        bootstrap = Bootstrap(BootstrapConfig(), modules=modules)
        recorder.attach(bootstrap.ctx.hooks)

        with pytest.raises(InitHookError):
            await bootstrap.run()

        failed = recorder.get_events(events.BOOTSTRAP_FAILED)
        assert failed[0][1]["step"] == "setup_module_loader"
        assert "finalize_routes" not in recorder.names(events.BOOTSTRAP_STEP)
        assert recorder.get_events(events.BOOTSTRAP_COMPLETE) == []

    @pytest.mark.asyncio
    async def test_custom_steps(self):
        calls = []

        async def first(ctx):
            calls.append("first")
            return ctx

        async def second(ctx):
            calls.append("second")
            return ctx

        bootstrap = Bootstrap(BootstrapConfig(), steps=[first, second])

        await bootstrap.run()

        assert calls == ["first", "second"]

    @pytest.mark.asyncio
    async def test_post_init_runs_after_preload(self):
        seen = []
        modules = [make_module("shop", routes=[Route(name="shop", path="/shop")])]
        config = BootstrapConfig(router_post_init=lambda router: seen.append(router.find_route("shop")))
        bootstrap = Bootstrap(config, modules=modules)

        await bootstrap.run()

        assert seen[0] is not None


class TestManifest:
    @pytest.mark.asyncio
    async def test_manifest_from_file(self, tmp_path, monkeypatch):
        remote = tmp_path / "modstage_test_billing_remote.py"
        remote.write_text(
            textwrap.dedent(
                """
                from modstage.models import ModuleConfig
                from modstage.models import Route

                module_config = ModuleConfig(
                    routes=lambda: [Route(name="billing", path="/billing")],
                    on_module_init=lambda ctx: ctx.params.setdefault("billing_ready", True),
                )
                """
            )
        )
        monkeypatch.syspath_prepend(str(tmp_path))

        manifest = tmp_path / "manifest.json"
        manifest.write_text(
            json.dumps(
                manifest_document(
                    [
                        {"name": "auth", "loadType": "init"},
                        {
                            "name": "billing",
                            "loadType": "normal",
                            "remoteEntry": "modstage_test_billing_remote:module_config",
                            "dependencies": ["auth"],
                            "featureFlags": ["billing"],
                        },
                        {"name": "reports", "loadType": "normal", "featureFlags": ["reports"]},
                    ],
                    features={"billing": True, "reports": False},
                )
            )
        )
        catalog = {"auth": ModuleConfig(), "reports": ModuleConfig()}
        bootstrap = Bootstrap(BootstrapConfig(manifest_path=str(manifest)), catalog=catalog)

        report = await bootstrap.start()
        ctx = bootstrap.ctx

        assert ctx.params["tenant"] == "acme"
        assert ctx.params["billing_ready"] is True
        assert ctx.module_loader.get_module("billing").is_deferred
        assert report.loaded == ["billing"]
        assert report.skipped == ["reports"]
        assert ctx.router.find_route("billing") is not None

    @pytest.mark.asyncio
    async def test_manifest_yaml_and_validation_failure(self, tmp_path):
        manifest = tmp_path / "manifest.yaml"
        manifest.write_text(
            textwrap.dedent(
                """
                status: ok
                data:
                  modules:
                    - name: a
                      loadType: normal
                      dependencies: [b]
                    - name: b
                      loadType: normal
                      dependencies: [a]
                """
            )
        )
        bootstrap = Bootstrap(BootstrapConfig(manifest_path=str(manifest)), catalog={"a": ModuleConfig(), "b": ModuleConfig()})

        with pytest.raises(ManifestValidationError) as exc_info:
            await bootstrap.run()

        assert any(check.name == "dependency_cycle" for check in exc_info.value.errors)

    @pytest.mark.asyncio
    async def test_error_status_aborts(self, tmp_path):
        manifest = tmp_path / "manifest.json"
        manifest.write_text(json.dumps(manifest_document([], status="error")))
        bootstrap = Bootstrap(BootstrapConfig(manifest_path=str(manifest)))

        with pytest.raises(ManifestError, match="status 'error'"):
            await bootstrap.run()

    @pytest.mark.asyncio
    async def test_manifest_url_requires_api_url(self):
        ctx = make_context(manifest_url="/app/start")

        with pytest.raises(ConfigurationError, match="api_url"):
            await setup_api_client(ctx)

    @pytest.mark.asyncio
    async def test_manifest_from_api(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request.url.path)
            return httpx.Response(
                200,
                json=manifest_document(
                    [{"name": "profile", "loadType": "normal", "accessPermissions": ["profile.read"]}],
                    permissions={"profile.read": True},
                ),
            )

        bootstrap = Bootstrap(
            BootstrapConfig(manifest_url="/app/start"),
            catalog={"profile": ModuleConfig()},
        )
        bootstrap.ctx.api_client = ApiClient("https://api.example.com", transport=httpx.MockTransport(handler))

        try:
            report = await bootstrap.start()
        finally:
            await bootstrap.aclose()

        assert requests == ["/app/start"]
        assert report.loaded == ["profile"]
        assert bootstrap.ctx.get_service(API_CLIENT) is bootstrap.ctx.api_client
