from decimal import Decimal

from debt_payoff.settings import EngineSettings, database_url_from_env


def test_defaults():
    settings = EngineSettings.from_env({})
    assert settings.horizon_months == 1200
    assert settings.payoff_epsilon == Decimal("0.01")
    assert settings.max_monthly_interest_fraction == Decimal("0.20")
    assert settings.max_total_interest_multiple == Decimal("1.5")


def test_environment_overrides():
    settings = EngineSettings.from_env(
        {"DEBT_PAYOFF_HORIZON_MONTHS": "360", "DEBT_PAYOFF_MAX_TOTAL_INTEREST_MULTIPLE": "3"}
    )
    assert settings.horizon_months == 360
    assert settings.max_total_interest_multiple == Decimal("3")


def test_invalid_values_fall_back_to_defaults(caplog):
    settings = EngineSettings.from_env(
        {"DEBT_PAYOFF_HORIZON_MONTHS": "forever", "DEBT_PAYOFF_EPSILON": "-1", "DEBT_PAYOFF_LARGE_NUMBER_THRESHOLD": "x"}
    )
    assert settings == EngineSettings()
    assert "DEBT_PAYOFF_HORIZON_MONTHS" in caplog.text


def test_database_url():
    assert database_url_from_env({}) is None
    assert database_url_from_env({"DEBT_PAYOFF_DATABASE_URL": "sqlite://"}) == "sqlite://"
