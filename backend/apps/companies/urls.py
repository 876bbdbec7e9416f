# apps/companies/urls.py

from django.urls import path
from rest_framework.routers import DefaultRouter
from .views import CompanyViewSet, SignupView

router = DefaultRouter()
router.register(r"companies", CompanyViewSet, basename="company")

urlpatterns = [
    path("auth/signup/", SignupView.as_view(), name="signup"),
] + router.urls
