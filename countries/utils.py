import json
import logging
import os
import random
import tempfile
import threading
from datetime import datetime, timezone

import requests
from django.conf import settings
from django.db import connections
from PIL import Image, ImageDraw, ImageFont
from requests.exceptions import RequestException

from .exceptions import RenderError, SourceError
from .serializers import ExchangeRatesSerializer, RawCountrySerializer

logger = logging.getLogger(__name__)

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000
SUMMARY_IMAGE_NAME = "summary.png"


class Config:
    """Runtime knobs, read from Django settings on every access."""

    @property
    def countries_api(self) -> str:
        return settings.COUNTRIES_API_URL

    @property
    def exchange_api(self) -> str:
        return settings.EXCHANGE_RATES_API_URL

    @property
    def timeout(self) -> float:
        return settings.FETCH_TIMEOUT

    @property
    def cache_path(self) -> str:
        """Return absolute cache directory path (writable)."""
        path = os.path.abspath(settings.SUMMARY_CACHE_DIR)
        os.makedirs(path, exist_ok=True)
        return path


config = Config()


def fetch(url):
    """GET ``url`` and return the raw body, raising ``SourceError`` on failure."""
    try:
        resp = requests.get(url, timeout=config.timeout)
        resp.raise_for_status()
    except RequestException as e:
        raise SourceError(f"Could not fetch {url}: {e}") from e
    return resp.content


def _load_json(body, label):
    try:
        return json.loads(body)
    except (TypeError, ValueError) as e:
        raise SourceError(f"{label} returned malformed JSON") from e


def parse_countries(payload):
    """
    Turn the countries API payload into ``RawCountry`` objects.

    The payload as a whole must be a list; individual entries that fail
    validation are skipped with a warning rather than failing the refresh.
    """
    if not isinstance(payload, list):
        raise SourceError("Countries API payload is not a list")

    countries = []
    for item in payload:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object country entry: %r", item)
            continue
        serializer = RawCountrySerializer(data=item)
        if not serializer.is_valid():
            logger.warning("Skipping country %r: %s", item.get("name"), serializer.errors)
            continue
        countries.append(serializer.save())
    return countries


def parse_exchange_rates(payload):
    serializer = ExchangeRatesSerializer(data=payload)
    if not serializer.is_valid():
        raise SourceError(f"Exchange rates payload rejected: {serializer.errors}")
    return serializer.save()


def fetch_countries():
    return parse_countries(_load_json(fetch(config.countries_api), "Countries API"))


def fetch_exchange_rates():
    return parse_exchange_rates(_load_json(fetch(config.exchange_api), "Exchange rates API"))


def make_multiplier(rng=None):
    """Random GDP multiplier in [1000, 2000], inclusive."""
    rng = rng or random
    return rng.randint(MULTIPLIER_MIN, MULTIPLIER_MAX)


def get_now():
    """Return current UTC datetime (aware)."""
    return datetime.now(timezone.utc)


def format_timestamp(value):
    if value is None:
        return None
    return value.isoformat()


def format_number(value):
    return f"{value:,.0f}"


def get_summary_image_path():
    """Return full path to the summary image in the writable cache."""
    return os.path.join(config.cache_path, SUMMARY_IMAGE_NAME)


def _load_fonts():
    try:
        return ImageFont.truetype("arial.ttf", 28), ImageFont.truetype("arial.ttf", 20)
    except OSError:
        return ImageFont.load_default(), ImageFont.load_default()


def generate_summary_image(projection, path=None):
    """
    Generate a summary PNG showing total countries, the top countries by
    estimated GDP and the last refresh timestamp.

    The file is written next to its final location and moved into place, so
    a concurrent reader never sees a half-written image.
    """
    path = path or get_summary_image_path()

    img = Image.new("RGB", (800, 500), color="white")
    draw = ImageDraw.Draw(img)
    font_title, font_body = _load_fonts()

    draw.text((20, 20), "Country Summary Report", fill="black", font=font_title)
    draw.text((20, 70), f"Total Countries: {projection.total_countries}", fill="black", font=font_body)
    draw.text((20, 120), "Top 5 Countries by Estimated GDP:", fill="black", font=font_body)

    y = 160
    if not projection.top_countries:
        draw.text((40, y), "No GDP data available.", fill="gray", font=font_body)
    else:
        for rank, (name, gdp) in enumerate(projection.top_countries, start=1):
            draw.text((40, y), f"{rank}. {name} - ${format_number(gdp)}", fill="blue", font=font_body)
            y += 30

    draw.text((20, 400), f"Last Refresh: {projection.last_refreshed_at}", fill="black", font=font_body)

    directory = os.path.dirname(path) or "."
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".summary-", suffix=".png", dir=directory)
        with os.fdopen(fd, "wb") as fh:
            img.save(fh, "PNG")
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise RenderError(f"Could not write summary image to {path}: {e}") from e
    return path


def spawn_background(func, *args, **kwargs):
    """
    Run ``func`` on a detached daemon thread and return the thread.

    Nobody joins it; ``func`` is expected to log its own failures. The thread's
    database connection is closed when it finishes.
    """
    def runner():
        try:
            func(*args, **kwargs)
        finally:
            connections.close_all()

    thread = threading.Thread(target=runner, name=f"bg-{func.__name__}", daemon=True)
    thread.start()
    return thread
