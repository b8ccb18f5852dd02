"""Unit tests for singleton service factories."""

import pytest

from concrete_orders.services.service_factory import clear_all_service_caches, service_factory

pytestmark = pytest.mark.unit


class TestServiceFactory:
    """Tests for the service_factory decorator."""

    def test_same_instance_is_returned(self):
        @service_factory
        def get_thing():
            return object()

        assert get_thing() is get_thing()

    def test_instances_are_cached_per_arguments(self):
        @service_factory
        def get_window(minutes: int = 10):
            return {"minutes": minutes}

        assert get_window(10) is get_window(10)
        assert get_window(10) is not get_window(30)
        assert get_window.cache_info()["size"] == 2

    def test_clear_cache(self):
        @service_factory
        def get_thing():
            return object()

        first = get_thing()
        get_thing.clear_cache()

        assert get_thing() is not first

    def test_clear_all_service_caches(self):
        @service_factory
        def get_thing():
            return object()

        first = get_thing()
        clear_all_service_caches()

        assert get_thing() is not first
        assert get_thing.cache_info()["size"] == 1
