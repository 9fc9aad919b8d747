from .domain import SummaryProjection
from . import utils

TOP_N = 5


def project(records, *, now=None, limit=TOP_N):
    """
    Build the summary shown on the rendered image.

    The top list holds countries with an estimated GDP, highest first; ties
    keep their dataset order. ``last_refreshed_at`` is taken from the first
    record in dataset order, falling back to ``now`` for an empty dataset.
    """
    records = list(records)

    with_gdp = [r for r in records if r.estimated_gdp is not None]
    # sorted() is stable, so equal GDPs stay in input order
    ranked = sorted(with_gdp, key=lambda r: r.estimated_gdp, reverse=True)
    top = tuple((r.name, r.estimated_gdp) for r in ranked[:limit])

    if records and records[0].last_refreshed_at is not None:
        last_refreshed_at = records[0].last_refreshed_at
    else:
        last_refreshed_at = now or utils.get_now()

    return SummaryProjection(
        total_countries=len(records),
        top_countries=top,
        last_refreshed_at=utils.format_timestamp(last_refreshed_at),
    )
