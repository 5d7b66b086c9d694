"""URL configuration for passbook.

The Apple Wallet web service lives under ``/api/wallet/`` so the pass
``webServiceURL`` should point at ``<BASE_URL>/api/wallet``.
"""

from django.conf import settings
from django.contrib import admin
from django.urls import path

from api.api import api

admin.site.index_title = f"Welcome to {settings.SITE_NAME} v{settings.VERSION} Admin"
admin.site.site_title = f"{settings.SITE_NAME} v{settings.VERSION} Admin"

urlpatterns = [
    path("api/", api.urls),
]

if settings.ADMIN_URL:  # pragma: no cover
    urlpatterns.insert(1, path(settings.ADMIN_URL, admin.site.urls))
