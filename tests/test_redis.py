from redis.exceptions import ConnectionError as RedisConnectionError

from limo_booking.core import redis as redis_helpers


class FakeRedis:
    def __init__(self, broken=False):
        self.keys = {}
        self.broken = broken

    def set(self, key, value, nx=False, ex=None):
        if self.broken:
            raise RedisConnectionError("down")
        if nx and key in self.keys:
            return None
        self.keys[key] = value
        return True

    def delete(self, key):
        if self.broken:
            raise RedisConnectionError("down")
        self.keys.pop(key, None)


def test_claim_is_exclusive_until_released(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(redis_helpers, "get_redis_client", lambda: client)

    assert redis_helpers.claim_key("webhook:event:evt_1", 60)
    assert not redis_helpers.claim_key("webhook:event:evt_1", 60)

    redis_helpers.release_key("webhook:event:evt_1")
    assert redis_helpers.claim_key("webhook:event:evt_1", 60)


def test_claim_without_redis_always_succeeds(monkeypatch):
    monkeypatch.setattr(redis_helpers, "get_redis_client", lambda: None)
    assert redis_helpers.claim_key("k")
    assert redis_helpers.claim_key("k")


def test_claim_survives_redis_errors(monkeypatch):
    monkeypatch.setattr(redis_helpers, "get_redis_client", lambda: FakeRedis(broken=True))
    assert redis_helpers.claim_key("k")
    redis_helpers.release_key("k")
