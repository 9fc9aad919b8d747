from django.urls import path
from . import views


urlpatterns = [
    # GET /status → total countries and last refresh time
    path('status', views.get_status, name='get_status'),
    path('stats', views.get_status, name='get_stats'),

    # POST /countries/refresh → fetch sources and reconcile stored countries
    path('countries/refresh', views.refresh_countries, name='refresh_countries'),

    # GET /countries/image → serve the last rendered summary image
    path('countries/image', views.get_summary_image, name='get_summary_image'),

    # GET /countries → list countries (optional filters and sort)
    path('countries', views.list_countries, name='list_countries'),

    # GET or DELETE /countries/<name> → country detail or delete
    path('countries/<str:name>', views.country_detail, name='country_detail'),
]
