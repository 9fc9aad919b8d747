import logging

from rest_framework import serializers

from .domain import Currency, ExchangeRateTable, RawCountry
from .models import Country

logger = logging.getLogger(__name__)


class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = [
            'id', 'name', 'capital', 'region', 'population',
            'currency_code', 'exchange_rate', 'estimated_gdp',
            'flag_url', 'last_refreshed_at'
        ]
        read_only_fields = fields


class CurrencySerializer(serializers.Serializer):
    code = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    name = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    symbol = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class RawCountrySerializer(serializers.Serializer):
    """
    One entry of the countries API payload.

    Only ``name`` is mandatory; a missing population counts as 0 and capital,
    region, flag and currencies may be missing or null. ``save()`` returns a
    ``RawCountry``.
    """
    name = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    capital = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    region = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    population = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    currencies = CurrencySerializer(many=True, required=False, allow_null=True)
    flag = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate(self, data):
        if not data.get("name"):
            raise serializers.ValidationError({"name": "is required"})
        return data

    def create(self, validated_data):
        currencies = tuple(
            Currency(
                code=c.get("code") or None,
                name=c.get("name") or None,
                symbol=c.get("symbol") or None,
            )
            for c in (validated_data.get("currencies") or [])
        )
        return RawCountry(
            name=validated_data["name"],
            capital=validated_data.get("capital") or None,
            region=validated_data.get("region") or None,
            population=validated_data.get("population") or 0,
            currencies=currencies,
            flag=validated_data.get("flag") or None,
        )


class ExchangeRatesSerializer(serializers.Serializer):
    """The exchange rate API payload; ``save()`` returns an ``ExchangeRateTable``."""
    result = serializers.CharField(required=False, allow_blank=True)
    base_code = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    time_last_update_utc = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    time_next_update_utc = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    # values are checked one by one in create(), so a single bad rate only
    # loses that currency
    rates = serializers.DictField(child=serializers.JSONField(allow_null=True))

    def validate_result(self, value):
        if value and value.lower() == "error":
            raise serializers.ValidationError("source reported an error")
        return value

    def create(self, validated_data):
        rates = {}
        for code, value in validated_data["rates"].items():
            if isinstance(value, bool):
                value = None
            try:
                rates[code] = float(value)
            except (TypeError, ValueError):
                logger.warning("Dropping unusable exchange rate %r for %s", value, code)
        return ExchangeRateTable(
            rates=rates,
            base_code=validated_data.get("base_code") or None,
            time_last_update_utc=validated_data.get("time_last_update_utc") or None,
            time_next_update_utc=validated_data.get("time_next_update_utc") or None,
        )
