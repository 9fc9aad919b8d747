"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from countries import utils


def run_inline(func, *args, **kwargs):
    return func(*args, **kwargs)


@pytest.fixture(autouse=True)
def summary_dir(settings, tmp_path):
    """Render summary images into a per-test directory."""
    path = tmp_path / "cache"
    settings.SUMMARY_CACHE_DIR = str(path)
    return path


@pytest.fixture(autouse=True)
def no_background_threads(monkeypatch):
    """Run the post-refresh summary job inline so tests can observe it."""
    monkeypatch.setattr(utils, "spawn_background", run_inline)


@pytest.fixture
def refreshed_at():
    return datetime(2025, 10, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def countries_payload():
    return [
        {
            "name": "France",
            "capital": "Paris",
            "region": "Europe",
            "population": 67000000,
            "currencies": [{"code": "EUR", "name": "Euro", "symbol": "€"}],
            "flag": "https://flagcdn.com/fr.svg",
        },
        {
            "name": "Japan",
            "capital": "Tokyo",
            "region": "Asia",
            "population": 125000000,
            "currencies": [{"code": "JPY", "name": "Japanese yen", "symbol": "¥"}],
            "flag": "https://flagcdn.com/jp.svg",
        },
        {
            "name": "Antarctica",
            "region": "Polar",
            "population": 1000,
            "flag": "https://flagcdn.com/aq.svg",
        },
    ]


@pytest.fixture
def rates_payload():
    return {
        "result": "success",
        "base_code": "USD",
        "time_last_update_utc": "Mon, 20 Oct 2025 00:02:31 +0000",
        "rates": {"USD": 1, "EUR": 0.9, "JPY": 150.0},
    }


@pytest.fixture
def sources(monkeypatch, countries_payload, rates_payload):
    """
    Replace both external fetches. Set ``countries_error``/``rates_error`` on
    the returned namespace to make a fetch raise instead.
    """
    state = SimpleNamespace(
        countries=utils.parse_countries(countries_payload),
        rates=utils.parse_exchange_rates(rates_payload),
        countries_error=None,
        rates_error=None,
    )

    def fetch_countries():
        if state.countries_error is not None:
            raise state.countries_error
        return state.countries

    def fetch_exchange_rates():
        if state.rates_error is not None:
            raise state.rates_error
        return state.rates

    monkeypatch.setattr(utils, "fetch_countries", fetch_countries)
    monkeypatch.setattr(utils, "fetch_exchange_rates", fetch_exchange_rates)
    return state
