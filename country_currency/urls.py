"""
URL configuration for country_currency project.

Everything except the admin lives in the ``countries`` app. Unknown paths and
unhandled errors answer with JSON instead of Django's HTML pages.
"""
import logging

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse

logger = logging.getLogger(__name__)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('countries.urls')),
]


def custom_404(request, exception):
    return JsonResponse({"error": "Endpoint not found, try /countries or /status"}, status=404)


def custom_500(request):
    logger.error("Unhandled error serving %s", request.path)
    return JsonResponse({"error": "Internal server error"}, status=500)


handler404 = "country_currency.urls.custom_404"
handler500 = "country_currency.urls.custom_500"
