"""
Tests for the bootstrap context and collaborator protocols.
"""

import pytest
from modstage.access import AccessControl
from modstage.context import ACCESS_CONTROL
from modstage.exceptions import ServiceNotFoundError
from modstage.i18n import ResourceStore
from modstage.interfaces import AccessDecider
from modstage.interfaces import ConfigResolver
from modstage.interfaces import LocalizationStore
from modstage.interfaces import MockRegistrar
from modstage.interfaces import RouteRegistrar
from modstage.manifest import ImportConfigResolver
from modstage.mocks import MockService
from modstage.routing import RouterService
from modstage.testing import make_context


def test_service_locator():
    ctx = make_context()
    access = AccessControl()

    assert ctx.get_service(ACCESS_CONTROL) is None
    ctx.register_service(ACCESS_CONTROL, access)

    assert ctx.has_service(ACCESS_CONTROL)
    assert ctx.require_service(ACCESS_CONTROL) is access
    assert ctx.services == {ACCESS_CONTROL: access}


def test_require_missing_service():
    with pytest.raises(ServiceNotFoundError) as exc_info:
        make_context().require_service("payments")

    assert exc_info.value.key == "payments"
    assert str(exc_info.value) == "Service not registered: payments"


def test_environment_flags():
    assert make_context(environment="development").is_development
    assert not make_context().is_development
    assert make_context().environment == "test"


def test_reference_collaborators_satisfy_protocols():
    assert isinstance(AccessControl(), AccessDecider)
    assert isinstance(RouterService(), RouteRegistrar)
    assert isinstance(ResourceStore(), LocalizationStore)
    assert isinstance(ImportConfigResolver(), ConfigResolver)
    assert isinstance(MockService(), MockRegistrar)


def test_mock_service_reset():
    mocks = MockService()
    mocks.add_handlers(["a", "b"])

    mocks.reset()

    assert mocks.handlers == []
