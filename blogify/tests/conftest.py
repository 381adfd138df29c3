"""Shared fixtures for blogify tests."""

import pytest


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from blogify.config import get_settings

    get_settings.cache_clear()

    # 2. Persistence gateway singleton
    import blogify.services.gateway as gateway_mod

    gateway_mod._gateway = None

    # 3. Blob storage singleton
    import blogify.services.blob_storage as blob_mod

    blob_mod._container_client = None

    # 4. Password hashing context
    import blogify.services.auth as auth_mod

    auth_mod._pwd_context = None

    # 5. Health check cache
    import blogify.main as main_mod

    main_mod._health_cache = None


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults."""
    from blogify.config import Settings, get_settings

    test_settings = Settings(
        environment="test",
        storage_backend="memory",
        azure_storage_account="teststorage",
        azure_storage_container="test-blogify",
        managed_identity_client_id="test-client-id",
        jwt_secret="test-secret",
        password_hash_rounds=4,
        store_write_delay=0.0,
        editor_title_debounce=0.02,
        editor_content_debounce=0.05,
        editor_autosave_interval=0.1,
    )

    get_settings.cache_clear()
    monkeypatch.setattr("blogify.config.get_settings", lambda: test_settings)

    # Patch get_settings in all modules that import it directly
    # (from blogify.config import get_settings creates a local binding that
    # the blogify.config monkeypatch above does not affect)
    for mod_path in [
        "blogify.services.gateway",
        "blogify.services.blob_storage",
        "blogify.services.auth",
        "blogify.services.editor",
        "blogify.main",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


@pytest.fixture
def gateway(mock_settings):
    """A fresh in-memory gateway installed as the process singleton."""
    import blogify.services.gateway as gateway_mod

    gw = gateway_mod.InMemoryGateway()
    gateway_mod._gateway = gw
    return gw


@pytest.fixture
def store(gateway):
    from blogify.services.store import BlogStore

    return BlogStore(gateway)
