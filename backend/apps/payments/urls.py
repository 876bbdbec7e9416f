# apps/payments/urls.py

from django.urls import path
from .views import CheckoutView, WebhookView

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="payments-checkout"),
    path("webhook/", WebhookView.as_view(), name="payments-webhook"),
]
