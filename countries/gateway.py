"""
Storage access for ``Country`` rows.

All database errors leave this module as ``PersistenceUnavailable`` so the
refresh and the views can tell a storage outage from a source outage.
"""
import logging
from contextlib import contextmanager

from django.db import DatabaseError, connection, transaction
from django.db.models import Max

from .exceptions import CountryNotFound, PersistenceUnavailable
from .models import REFRESH_FIELDS, Country

logger = logging.getLogger(__name__)

BATCH_SIZE = 100


@contextmanager
def storage_errors(action):
    try:
        yield
    except DatabaseError as e:
        logger.error("Database error while trying to %s: %s", action, e)
        raise PersistenceUnavailable(details=f"Could not {action}") from e


class CountryGateway:
    """CRUD over the countries table, keyed by country name."""

    def atomic(self):
        return transaction.atomic()

    def get_all(self):
        with storage_errors("read countries from database"):
            return list(Country.objects.all())

    def get_name_index(self):
        """Map every stored name to its primary key, in a single query."""
        with storage_errors("read countries from database"):
            return dict(Country.objects.values_list("name", "pk"))

    def _lookup(self, name):
        # An exact match wins over rows that differ only by case.
        exact = Country.objects.filter(name=name).first()
        if exact is not None:
            return exact
        country = Country.objects.filter(name__iexact=name).order_by("id").first()
        if country is None:
            raise CountryNotFound()
        return country

    def get_by_name(self, name):
        with storage_errors("read country from database"):
            return self._lookup(name)

    def count(self):
        with storage_errors("count countries"):
            return Country.objects.count()

    def last_refreshed_at(self):
        with storage_errors("read refresh status"):
            return Country.objects.aggregate(latest=Max("last_refreshed_at"))["latest"]

    def insert_batch(self, records):
        """
        Create ``records``. A name that already exists by the time this runs
        is overwritten with the new values instead of failing on the unique key.
        """
        options = {
            "batch_size": BATCH_SIZE,
            "update_conflicts": True,
            "update_fields": REFRESH_FIELDS,
        }
        if connection.features.supports_update_conflicts_with_target:
            options["unique_fields"] = ["name"]
        with storage_errors("insert data into database"):
            Country.objects.bulk_create(records, **options)
        return len(records)

    def update_batch(self, records):
        """
        Overwrite the refresh fields of ``records``. Each record must carry the
        primary key from the name index taken at the start of the refresh;
        rows deleted since then are simply not matched.
        """
        keyed = [r for r in records if r.pk is not None]
        for record in records:
            if record.pk is None:
                logger.warning("Country %r has no stored row to update, skipping", record.name)
        if not keyed:
            return 0
        with storage_errors("update data in database"):
            return Country.objects.bulk_update(keyed, fields=REFRESH_FIELDS, batch_size=BATCH_SIZE)

    def delete_by_name(self, name):
        with storage_errors("delete country from database"):
            country = self._lookup(name)
            country.delete()
