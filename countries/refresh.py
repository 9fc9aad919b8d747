"""
Refresh pipeline: fetch both sources, reconcile, persist, then regenerate the
summary image in the background.
"""
import logging
import random
import threading
import time

from .domain import ExchangeRateTable, RefreshResult
from .exceptions import RenderError, SourceError, SourceUnavailable
from .gateway import CountryGateway
from .reconcile import reconcile
from .summary import project
from . import utils

logger = logging.getLogger(__name__)

# Serializes read-classify-write so two refreshes in one process cannot both
# classify the same new name as an insert.
_refresh_lock = threading.Lock()


def regenerate_summary(gateway=None):
    """
    Re-read every country, project the summary and render it.

    Runs detached from the request that triggered it, so failures are only
    logged. Returns the image path, or None if anything went wrong.
    """
    gateway = gateway or CountryGateway()
    try:
        projection = project(gateway.get_all())
        path = utils.generate_summary_image(projection)
    except RenderError:
        logger.exception("Failed to generate summary image")
        return None
    except Exception:
        logger.exception("Summary regeneration failed")
        return None
    logger.info("Summary image written to %s", path)
    return path


def run_refresh(*, gateway=None, rng=None, spawn=None):
    """
    Pull countries and exchange rates and reconcile them into the database.

    Raises ``SourceUnavailable`` if the countries source fails and
    ``PersistenceUnavailable`` if storage fails; in the latter case nothing
    from this refresh is kept. An exchange rate failure only means no GDP
    estimates this time around.
    """
    gateway = gateway or CountryGateway()
    rng = rng or random.Random()
    spawn = spawn or utils.spawn_background
    start_time = time.monotonic()

    try:
        countries = utils.fetch_countries()
    except SourceError as e:
        logger.warning("Countries source unavailable: %s", e)
        raise SourceUnavailable(details="Could not fetch data from countries API") from e

    try:
        rates = utils.fetch_exchange_rates()
    except SourceError as e:
        logger.warning("Could not fetch exchange rates, continuing without GDP estimates: %s", e)
        rates = ExchangeRateTable.empty()

    now = utils.get_now()
    logger.info("Refreshing %d countries with %d exchange rates", len(countries), len(rates.rates))

    with _refresh_lock:
        existing_names = gateway.get_name_index()
        to_insert, to_update = reconcile(
            existing_names, countries, rates=rates, refreshed_at=now, rng=rng,
        )
        with gateway.atomic():
            if to_insert:
                gateway.insert_batch(to_insert)
            if to_update:
                gateway.update_batch(to_update)

    duration = round(time.monotonic() - start_time, 2)
    logger.info(
        "Refresh done: %d inserted, %d updated in %.2fs",
        len(to_insert), len(to_update), duration,
    )

    spawn(regenerate_summary, gateway)

    return RefreshResult(
        inserted=len(to_insert),
        updated=len(to_update),
        refreshed_at=utils.format_timestamp(now),
        duration_seconds=duration,
    )
