from aggregator.settings import Settings, load_settings


def test_defaults_match_observed_behaviour():
    settings = Settings()

    assert settings.downstream_timeout == 30.0
    assert settings.retry_max_retries == 3
    assert settings.retry_backoff_base == 2.0
    assert settings.subject_cache_ttl == 300
    assert settings.global_cache_ttl == 600
    assert settings.feed_cache_ttl == 300
    assert settings.global_fetch_limit == 10000
    assert settings.cache_max_size == 1000
    assert settings.feed_max_concurrency == 10


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CONTENT_API_URL", "http://content.internal:8080")
    monkeypatch.setenv("DOWNSTREAM_TIMEOUT", "5")
    monkeypatch.setenv("RETRY_MAX_RETRIES", "1")
    monkeypatch.setenv("GLOBAL_CACHE_TTL", "60")

    settings = load_settings()

    assert settings.content_api_url == "http://content.internal:8080"
    assert settings.retry_max_retries == 1
    assert settings.global_cache_ttl == 60
    content = settings.endpoints()["content"]
    assert content.base_url == "http://content.internal:8080"
    assert content.timeout == 5.0


def test_endpoints_cover_every_downstream():
    endpoints = Settings().endpoints()

    assert set(endpoints) == {"content", "fitness", "social-graph", "posts"}
    assert all(endpoint.name == name for name, endpoint in endpoints.items())
