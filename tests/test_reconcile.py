"""Tests for classifying fetched countries and estimating GDP."""
import math
import random

import pytest

from countries.domain import Currency, ExchangeRateTable, RawCountry
from countries.reconcile import estimate_gdp, exchange_rate_for, reconcile


class FixedRng:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def randint(self, low, high):
        self.calls += 1
        return self.value


def raw(name, population=1000, code=None):
    currencies = (Currency(code=code),) if code else ()
    return RawCountry(name=name, population=population, currencies=currencies)


RATES = ExchangeRateTable(rates={"EUR": 0.9, "NGN": 1600.0, "ZZZ": 0.0})


class TestEstimateGdp:
    def test_absent_without_currency_code(self):
        assert estimate_gdp(1000, None, RATES, FixedRng(1500)) is None

    def test_absent_when_code_missing_from_rates(self):
        assert estimate_gdp(1000, "JPY", RATES, FixedRng(1500)) is None

    def test_zero_rate_is_treated_as_unavailable(self):
        rng = FixedRng(1500)
        assert estimate_gdp(1000, "ZZZ", RATES, rng) is None
        assert exchange_rate_for("ZZZ", RATES) is None
        assert rng.calls == 0

    def test_negative_and_non_finite_rates_are_unavailable(self):
        rates = {"NEG": -2.0, "INF": math.inf, "NAN": math.nan}
        for code in rates:
            assert estimate_gdp(1000, code, rates, FixedRng(1500)) is None

    def test_uses_multiplier_from_rng(self):
        assert estimate_gdp(900, "EUR", RATES, FixedRng(1000)) == pytest.approx(900 * 1000 / 0.9)

    def test_positive_population_gives_finite_positive_value(self):
        gdp = estimate_gdp(5, "NGN", RATES, random.Random(1))
        assert gdp > 0 and math.isfinite(gdp)

    def test_multiplier_stays_in_range(self):
        rng = random.Random(0)
        values = [estimate_gdp(1, "EUR", {"EUR": 1.0}, rng) for _ in range(500)]
        assert min(values) >= 1000
        assert max(values) <= 2000

    def test_plain_dict_rates_are_accepted(self):
        assert estimate_gdp(10, "EUR", {"EUR": 2.0}, FixedRng(1200)) == 6000


class TestReconcile:
    def test_france_update_japan_insert(self, refreshed_at):
        incoming = [raw("France", 67000000, "EUR"), raw("Japan", 125000000, "JPY")]
        rates = ExchangeRateTable(rates={"EUR": 0.9})
        expected_multiplier = random.Random(7).randint(1000, 2000)

        to_insert, to_update = reconcile(
            {"France"}, incoming, rates=rates, refreshed_at=refreshed_at, rng=random.Random(7),
        )

        assert [c.name for c in to_update] == ["France"]
        assert [c.name for c in to_insert] == ["Japan"]

        france = to_update[0]
        assert france.currency_code == "EUR"
        assert france.exchange_rate == 0.9
        assert france.estimated_gdp == pytest.approx(67000000 * expected_multiplier / 0.9)

        japan = to_insert[0]
        assert japan.currency_code == "JPY"
        assert japan.exchange_rate is None
        assert japan.estimated_gdp is None

    def test_empty_incoming(self, refreshed_at):
        assert reconcile({"France"}, [], rates=RATES, refreshed_at=refreshed_at) == ([], [])

    @pytest.mark.parametrize("existing", [set(), {"A"}, {"A", "C"}, {"A", "B", "C", "X"}])
    def test_partitions_incoming(self, existing, refreshed_at):
        incoming = [raw("A", code="EUR"), raw("B"), raw("C", code="NGN")]

        to_insert, to_update = reconcile(
            existing, incoming, rates=RATES, refreshed_at=refreshed_at, rng=random.Random(1),
        )

        inserted = [c.name for c in to_insert]
        updated = [c.name for c in to_update]
        assert not set(inserted) & set(updated)
        assert sorted(inserted + updated) == ["A", "B", "C"]
        assert set(updated) <= existing
        # both keep incoming order
        assert inserted == [n for n in "ABC" if n not in existing]
        assert updated == [n for n in "ABC" if n in existing]

    def test_same_inputs_and_seed_give_same_result(self, refreshed_at):
        incoming = [raw("A", 10, "EUR"), raw("B", 20, "NGN"), raw("C", 30)]

        def run():
            to_insert, to_update = reconcile(
                {"B"}, incoming, rates=RATES, refreshed_at=refreshed_at, rng=random.Random(42),
            )
            return (
                [(c.name, c.estimated_gdp) for c in to_insert],
                [(c.name, c.estimated_gdp) for c in to_update],
            )

        assert run() == run()

    def test_records_carry_source_fields_and_refresh_time(self, refreshed_at):
        source = RawCountry(
            name="Nigeria",
            capital="Abuja",
            region="Africa",
            population=200,
            currencies=(Currency(code="NGN", name="Naira", symbol="₦"), Currency(code="USD")),
            flag="https://flagcdn.com/ng.svg",
        )

        (record,), _ = reconcile(set(), [source], rates=RATES, refreshed_at=refreshed_at, rng=FixedRng(1600))

        assert record.pk is None
        assert record.capital == "Abuja"
        assert record.region == "Africa"
        assert record.flag_url == "https://flagcdn.com/ng.svg"
        assert record.currency_code == "NGN"
        assert record.exchange_rate == 1600.0
        assert record.estimated_gdp == pytest.approx(200.0)
        assert record.last_refreshed_at == refreshed_at

    def test_country_without_currency_has_no_currency_fields(self, refreshed_at):
        (record,), _ = reconcile(set(), [raw("Antarctica")], rates=RATES, refreshed_at=refreshed_at)

        assert record.currency_code is None
        assert record.exchange_rate is None
        assert record.estimated_gdp is None

    def test_duplicate_names_keep_first(self, refreshed_at):
        incoming = [raw("A", 1), raw("A", 2), raw("B", 3)]

        to_insert, _ = reconcile(set(), incoming, rates=RATES, refreshed_at=refreshed_at)

        assert [(c.name, c.population) for c in to_insert] == [("A", 1), ("B", 3)]

    def test_matching_is_exact(self, refreshed_at):
        to_insert, to_update = reconcile({"france"}, [raw("France")], rates=RATES, refreshed_at=refreshed_at)

        assert [c.name for c in to_insert] == ["France"]
        assert to_update == []

    def test_name_index_keys_the_update_records(self, refreshed_at):
        incoming = [raw("France", code="EUR"), raw("Japan")]

        to_insert, to_update = reconcile(
            {"France": 7, "Chad": 9}, incoming, rates=RATES, refreshed_at=refreshed_at,
        )

        assert [(c.name, c.pk) for c in to_update] == [("France", 7)]
        assert [(c.name, c.pk) for c in to_insert] == [("Japan", None)]
