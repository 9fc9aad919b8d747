import logging
import os

from django.http import FileResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from .gateway import CountryGateway, storage_errors
from .models import Country
from .refresh import run_refresh
from .serializers import CountrySerializer
from . import utils

logger = logging.getLogger(__name__)

ALLOWED_FILTERS = {
    "name": "name__iexact",
    "capital": "capital__iexact",
    "region": "region__iexact",
    "population": "population",
    "currency_code": "currency_code__iexact",
    "currency": "currency_code__iexact",
    "exchange_rate": "exchange_rate",
    "estimated_gdp": "estimated_gdp",
}

SORT_FIELDS = {
    "name", "capital", "region", "population",
    "currency_code", "exchange_rate", "estimated_gdp",
}
SORT_ALIASES = {"gdp": "estimated_gdp", "currency": "currency_code"}


@api_view(['POST'])
def refresh_countries(request):
    """
    POST /countries/refresh
    Fetch countries and exchange rates, then insert or update cached rows.
    Answers 204 once the rows are saved; the summary image is rebuilt in the
    background afterwards.
    """
    result = run_refresh()
    logger.info("Refresh via API: %d inserted, %d updated", result.inserted, result.updated)
    return Response(status=status.HTTP_204_NO_CONTENT)


def _ordering(sort_param):
    if sort_param.endswith("_desc"):
        field, prefix = sort_param[:-len("_desc")], "-"
    elif sort_param.endswith("_asc"):
        field, prefix = sort_param[:-len("_asc")], ""
    else:
        raise ValidationError({"sort": "invalid format (use <field>_asc or <field>_desc)"})

    field = SORT_ALIASES.get(field, field)
    if field not in SORT_FIELDS:
        raise ValidationError({field: "is not a valid sort field"})
    return [f"{prefix}{field}", "id"]


@api_view(['GET'])
def list_countries(request):
    """
    GET /countries
    Filters:
      - name, capital, region, population, currency (or currency_code),
        exchange_rate, estimated_gdp
    Sorting:
      - ?sort=<field>_asc or <field>_desc, e.g. ?sort=gdp_desc
    Default:
      - Ordered by id ascending.
    """
    qs = Country.objects.all()

    for key in request.query_params.keys():
        if key == "sort":
            continue
        if key not in ALLOWED_FILTERS:
            raise ValidationError({key: "is not a valid filter"})
        if not request.query_params.get(key):
            raise ValidationError({key: "is required"})

    for key, lookup in ALLOWED_FILTERS.items():
        value = request.query_params.get(key)
        if value:
            try:
                qs = qs.filter(**{lookup: value})
            except (TypeError, ValueError):
                raise ValidationError({key: "is not a valid value"})

    sort_param = request.query_params.get("sort")
    if sort_param:
        qs = qs.order_by(*_ordering(sort_param))

    with storage_errors("read countries from database"):
        data = CountrySerializer(qs, many=True).data
    return Response(data)


@api_view(['GET', 'DELETE'])
def country_detail(request, name):
    """
    GET /countries/:name  -> the country, or 404 JSON if not found
    DELETE /countries/:name -> delete, return 204 or 404
    """
    gateway = CountryGateway()
    if request.method == 'GET':
        country = gateway.get_by_name(name)
        return Response(CountrySerializer(country).data)

    gateway.delete_by_name(name)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
def get_status(request):
    """
    GET /status -> { total_countries, last_refreshed_at }
    last_refreshed_at is the max(last_refreshed_at) across records (or null)
    """
    gateway = CountryGateway()
    return Response({
        "total_countries": gateway.count(),
        "last_refreshed_at": utils.format_timestamp(gateway.last_refreshed_at()),
    })


@api_view(['GET'])
def get_summary_image(request):
    """
    GET /countries/image
    Serve the most recently rendered summary image, or 404 JSON if none exists.
    """
    path = utils.get_summary_image_path()
    if not os.path.exists(path):
        return Response({"error": "Summary image not found"}, status=status.HTTP_404_NOT_FOUND)
    return FileResponse(open(path, 'rb'), content_type='image/png')
