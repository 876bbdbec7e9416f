# apps/api/urls_v1.py

from django.urls import path, include

urlpatterns = [
    path("", include("apps.leads.urls")),
    path("", include("apps.companies.urls")),
    path("", include("apps.subscriptions.urls")),
    path("", include("apps.reports.urls")),
    path("", include("apps.notifications.urls")),
    path("payments/", include("apps.payments.urls")),
    path("pricing/", include("apps.pricing.urls")),
]
