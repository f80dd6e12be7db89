"""Tests for livefeed.infrastructure.feed.subscription_registry."""

from livefeed.infrastructure.feed.subscription_registry import SubscriptionRegistry


def noop(*args):
    return None


class TestSubscriptionRegistry:

    def test_each_add_gets_its_own_token(self):
        registry = SubscriptionRegistry()
        a = registry.add(noop)
        b = registry.add(noop)
        assert a.token != b.token
        assert len(registry) == 2

    def test_on_empty_fires_only_when_last_removed(self):
        fired = []
        registry = SubscriptionRegistry(on_empty=lambda: fired.append(True))
        a = registry.add(noop)
        b = registry.add(noop)

        a()
        assert fired == []
        b()
        assert fired == [True]

    def test_double_remove_is_noop(self):
        fired = []
        registry = SubscriptionRegistry(on_empty=lambda: fired.append(True))
        sub = registry.add(noop)

        assert sub.unsubscribe() is True
        assert sub.unsubscribe() is False
        assert fired == [True]
        assert not sub.active

    def test_snapshot_is_a_copy_in_order(self):
        registry = SubscriptionRegistry()
        first = registry.add(noop)
        second = registry.add(print)

        snapshot = registry.snapshot()
        registry.add(len)
        first()

        assert [token for token, _ in snapshot] == [first.token, second.token]
        assert not registry.is_active(first.token)
        assert registry.is_active(second.token)

    def test_clear_does_not_fire_on_empty(self):
        fired = []
        registry = SubscriptionRegistry(on_empty=lambda: fired.append(True))
        registry.add(noop)
        registry.clear()
        assert len(registry) == 0
        assert not registry
        assert fired == []
