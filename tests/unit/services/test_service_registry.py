"""
Tests for the lazy service registry used by create_app()
"""

import pytest
from unittest.mock import Mock

from services.service_registry import ServiceRegistry, create_registry


@pytest.fixture
def registry():
    return create_registry()


class TestRegistration:

    def test_factory_is_lazy(self, registry):
        factory = Mock(return_value='instance')

        registry.register_factory('thing', factory)

        factory.assert_not_called()
        assert registry.get('thing') == 'instance'
        factory.assert_called_once_with()

    def test_unknown_service(self, registry):
        with pytest.raises(ValueError, match="not registered"):
            registry.get('missing')

    def test_factory_required(self, registry):
        with pytest.raises(ValueError):
            registry.register_factory('thing', None)

    def test_list_and_has(self, registry):
        registry.register_singleton('b', lambda: 1)
        registry.register_singleton('a', lambda: 2)

        assert registry.list_services() == ['a', 'b']
        assert registry.has('a')
        assert not registry.has('c')


class TestLifecycles:

    def test_singleton_is_reused(self, registry):
        registry.register_singleton('thing', object)

        assert registry.get('thing') is registry.get('thing')

    def test_transient_is_rebuilt(self, registry):
        registry.register_transient('thing', object)

        assert registry.get('thing') is not registry.get('thing')

    def test_reset_service_rebuilds_singleton(self, registry):
        registry.register_singleton('thing', object)
        first = registry.get('thing')

        registry.reset_service('thing')

        assert registry.get('thing') is not first

    def test_set_instance_pins_a_double(self, registry):
        registry.register_factory('twilio', Mock(side_effect=AssertionError('should not build')))
        double = Mock()

        registry.set_instance('twilio', double)

        assert registry.get('twilio') is double


class TestDependencies:

    def test_dependencies_passed_by_name(self, registry):
        registry.register_singleton('client_repository', lambda: 'repo')
        registry.register_factory(
            'client',
            lambda client_repository: ('service', client_repository),
            dependencies=['client_repository']
        )

        assert registry.get('client') == ('service', 'repo')

    def test_circular_dependency_detected(self, registry):
        registry.register_factory('a', lambda b: b, dependencies=['b'])
        registry.register_factory('b', lambda a: a, dependencies=['a'])

        with pytest.raises(RuntimeError, match='Circular dependency'):
            registry.get('a')

        with pytest.raises(RuntimeError, match='Circular dependency'):
            registry.get_initialization_order()

    def test_validate_reports_missing_dependency(self, registry):
        registry.register_factory('faq', lambda faq_repository: None, dependencies=['faq_repository'])

        errors = registry.validate_dependencies()

        assert errors == ["Service 'faq' depends on unregistered service 'faq_repository'"]

    def test_initialization_order_puts_dependencies_first(self, registry):
        registry.register_factory('service', lambda repo: None, dependencies=['repo'])
        registry.register_factory('repo', lambda session: None, dependencies=['session'])
        registry.register_singleton('session', lambda: None)

        assert registry.get_initialization_order() == ['session', 'repo', 'service']


def test_app_registry_is_complete(app):
    """Every service the routes ask for is registered and wired"""
    for name in ('inbound_message', 'auto_label', 'faq', 'auto_reply_settings',
                 'client', 'message', 'label', 'auth', 'twilio'):
        assert app.services.has(name)
    assert app.services.validate_dependencies() == []
    assert isinstance(app.services, ServiceRegistry)
