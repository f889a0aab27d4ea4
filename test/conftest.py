"""
Shared fixtures: a controllable clock, an in-memory stand-in for the
rate limiter's Redis pipeline, a local-memory cache in place of
django-redis, and fresh process generators per test.
"""

import pytest
from django.core.cache import cache
from redis.exceptions import RedisError

import utils.rate_limit as rate_limit
from idgen.generator import reset_snowflake
from utils.snow_flake import DEFAULT_EPOCH


class FakeClock:
    """Returns ``now`` on every read; queued ``ticks`` are consumed first."""

    def __init__(self, now):
        self.now = now
        self.ticks = []

    def __call__(self):
        if self.ticks:
            self.now = self.ticks.pop(0)
        return self.now


class FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def zadd(self, key, mapping):
        self.commands.append(("zadd", key, mapping))

    def zremrangebyscore(self, key, low, high):
        self.commands.append(("zremrangebyscore", key, low, high))

    def expire(self, key, seconds):
        self.commands.append(("expire", key, seconds))

    def zcard(self, key):
        self.commands.append(("zcard", key))

    def execute(self):
        if self.redis.fail:
            raise RedisError("connection refused")
        results = []
        for name, key, *args in self.commands:
            zset = self.redis.zsets.setdefault(key, {})
            if name == "zadd":
                before = len(zset)
                zset.update(args[0])
                results.append(len(zset) - before)
            elif name == "zremrangebyscore":
                low, high = args
                removed = [m for m, score in zset.items() if low <= score <= high]
                for member in removed:
                    del zset[member]
                results.append(len(removed))
            elif name == "expire":
                self.redis.expirations[key] = args[0]
                results.append(True)
            else:
                results.append(len(zset))
        return results


class FakeRedis:
    def __init__(self):
        self.zsets = {}
        self.expirations = {}
        self.fail = False

    def pipeline(self):
        return FakePipeline(self)


@pytest.fixture
def clock():
    return FakeClock(DEFAULT_EPOCH + 1000)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(rate_limit, "redis_client", redis)
    return redis


@pytest.fixture(autouse=True)
def local_cache(settings):
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}
    }
    cache.clear()
    yield cache
    cache.clear()


@pytest.fixture(autouse=True)
def fresh_snowflake():
    reset_snowflake()
    yield
    reset_snowflake()
