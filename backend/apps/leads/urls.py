# apps/leads/urls.py

from rest_framework.routers import DefaultRouter
from .views import LeadViewSet, MarketplaceViewSet, PurchaseViewSet

router = DefaultRouter()
router.register(r"leads", LeadViewSet, basename="lead")
router.register(r"marketplace", MarketplaceViewSet, basename="marketplace")
router.register(r"purchases", PurchaseViewSet, basename="purchase")

urlpatterns = router.urls
