import pytest


def test_settings_guardrail_prod_rejects_auto_create_schema() -> None:
    from docrev.config import Settings

    with pytest.raises(RuntimeError, match=r"DB_AUTO_CREATE_SCHEMA"):
        Settings(ENV="prod", DB_AUTO_CREATE_SCHEMA=True)


def test_settings_guardrail_prod_allows_migrations_only() -> None:
    from docrev.config import Settings

    Settings(ENV="prod", DB_AUTO_CREATE_SCHEMA=False)


def test_settings_guardrail_test_allows_auto_create_schema() -> None:
    from docrev.config import Settings

    Settings(ENV="test", DB_AUTO_CREATE_SCHEMA=True)


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"CONFLICT_RETRY_ATTEMPTS": 0}, "CONFLICT_RETRY_ATTEMPTS"),
        ({"CONFLICT_RETRY_BASE_DELAY_MS": -1}, "CONFLICT_RETRY_BASE_DELAY_MS"),
        ({"CONFLICT_RETRY_BASE_DELAY_MS": 100, "CONFLICT_RETRY_MAX_DELAY_MS": 10}, "CONFLICT_RETRY_MAX_DELAY_MS"),
    ],
)
def test_settings_guardrail_rejects_invalid_retry_policy(overrides, field) -> None:
    from docrev.config import Settings

    with pytest.raises(RuntimeError, match=field):
        Settings(**overrides)


def test_get_settings_returns_module_instance() -> None:
    from docrev.config import get_settings, settings

    assert get_settings() is settings
