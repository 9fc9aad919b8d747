from django.db import models


# Fields a refresh overwrites on an existing row
REFRESH_FIELDS = [
    "capital", "region", "population", "flag_url",
    "currency_code", "exchange_rate", "estimated_gdp",
    "last_refreshed_at",
]


class Country(models.Model):
    # id: auto-generated; insertion order doubles as dataset order
    name = models.CharField(max_length=200, unique=True)
    capital = models.CharField(max_length=200, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True)
    population = models.BigIntegerField(default=0)
    # currency_code: null when the source lists no currency
    currency_code = models.CharField(max_length=10, null=True, blank=True)
    # exchange_rate / estimated_gdp: null together when no usable rate exists
    exchange_rate = models.FloatField(null=True, blank=True)
    estimated_gdp = models.FloatField(null=True, blank=True)
    flag_url = models.URLField(max_length=500, null=True, blank=True)
    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "countries"
        ordering = ["id"]
        verbose_name_plural = "countries"

    def __str__(self):
        return self.name
