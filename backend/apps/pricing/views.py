# apps/pricing/views.py

from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from .selectors import get_active_pricing
from .serializers import PricingSerializer
from .services import update_pricing


class PricingView(APIView):
    """
    GET  /api/v1/pricing/   current pricing
    PUT  /api/v1/pricing/   publish a new version (admin)
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.IsAuthenticated()]
        return [permissions.IsAdminUser()]

    def get(self, request):
        return Response(PricingSerializer(get_active_pricing()).data)

    def put(self, request):
        serializer = PricingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        update_pricing(
            lead_prices=serializer.validated_data["lead_prices"],
            commission_rates=serializer.validated_data["commission_rates"],
            user=request.user,
        )
        return Response(PricingSerializer(get_active_pricing()).data)
