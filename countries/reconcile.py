"""
Classify a freshly fetched country list against what is already stored.

Everything here is pure: records come back as unsaved ``Country`` instances
and the caller decides how to persist them.
"""
import logging
import math
import random
from collections.abc import Mapping

from .models import Country
from . import utils

logger = logging.getLogger(__name__)


def exchange_rate_for(currency_code, rates):
    """Usable rate for ``currency_code``, or None if missing, zero or junk."""
    rate = rates.get(currency_code)
    if rate is None:
        return None
    try:
        rate = float(rate)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate) or rate <= 0:
        return None
    return rate


def estimate_gdp(population, currency_code, rates, rng=None):
    """
    population * multiplier / rate, with multiplier drawn from ``rng``.

    Returns None when no usable rate exists for ``currency_code``; no
    multiplier is drawn in that case.
    """
    rate = exchange_rate_for(currency_code, rates)
    if rate is None:
        return None
    multiplier = utils.make_multiplier(rng)
    return population * multiplier / rate


def build_record(raw, rates, refreshed_at, rng=None):
    currency_code = raw.currency_code
    exchange_rate = exchange_rate_for(currency_code, rates)
    estimated_gdp = None
    if exchange_rate is not None:
        estimated_gdp = estimate_gdp(raw.population, currency_code, rates, rng)

    return Country(
        name=raw.name,
        capital=raw.capital,
        region=raw.region,
        population=raw.population,
        flag_url=raw.flag,
        currency_code=currency_code,
        exchange_rate=exchange_rate,
        estimated_gdp=estimated_gdp,
        last_refreshed_at=refreshed_at,
    )


def reconcile(existing_names, incoming, *, rates, refreshed_at, rng=None):
    """
    Split ``incoming`` into (to_insert, to_update) against ``existing_names``.

    ``existing_names`` must cover every stored name, read once before this is
    called. It may be a plain set or a mapping of name to primary key; with a
    mapping, update records come back keyed so they can be written without
    looking the rows up again. Both lists keep the order of ``incoming``. A
    name repeated in ``incoming`` is kept only on its first occurrence.
    """
    rng = rng or random.Random()
    to_insert, to_update = [], []
    seen = set()

    for raw in incoming:
        if raw.name in seen:
            logger.warning("Duplicate country %r in source payload, keeping the first", raw.name)
            continue
        seen.add(raw.name)

        record = build_record(raw, rates, refreshed_at, rng)
        if raw.name in existing_names:
            if isinstance(existing_names, Mapping):
                record.pk = existing_names[raw.name]
            to_update.append(record)
        else:
            to_insert.append(record)

    return to_insert, to_update
