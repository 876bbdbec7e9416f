# apps/subscriptions/views.py

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.companies.selectors import require_company
from apps.leads.serializers import MarketplaceLeadSerializer

from .matching import MatchCriteria
from .selectors import get_recommended_leads, get_subscriptions_for_company
from .serializers import SubscriptionSerializer
from .services import create_subscription, delete_subscription, set_active, update_subscription


class SubscriptionViewSet(viewsets.ModelViewSet):
    """
    The current company's subscriptions.

    list:         GET    /api/v1/subscriptions/
    create:       POST   /api/v1/subscriptions/
    retrieve:     GET    /api/v1/subscriptions/{id}/
    update:       PUT    /api/v1/subscriptions/{id}/
    partial:      PATCH  /api/v1/subscriptions/{id}/
    destroy:      DELETE /api/v1/subscriptions/{id}/
    toggle:       POST   /api/v1/subscriptions/{id}/toggle/
    recommended:  GET    /api/v1/subscriptions/recommended/
    """

    serializer_class = SubscriptionSerializer
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return get_subscriptions_for_company(require_company(self.request.user))

    def create(self, request, *args, **kwargs):
        company = require_company(request.user)
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        subscription = create_subscription(
            company,
            name=data["name"],
            criteria=MatchCriteria(
                vertical=data.get("vertical") or None,
                risk=data.get("risk") or None,
                min_score=data.get("min_score"),
                max_price=data.get("max_price"),
                min_requested_amount=data.get("min_requested_amount"),
            ),
            max_daily_purchases=data.get("max_daily_purchases", 10),
            auto_buy=data.get("auto_buy", False),
            is_active=data.get("is_active", True),
        )
        return Response(SubscriptionSerializer(subscription).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        subscription = self.get_object()
        serializer = self.get_serializer(subscription, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        subscription = update_subscription(subscription, **serializer.validated_data)
        return Response(SubscriptionSerializer(subscription).data)

    def perform_destroy(self, instance):
        delete_subscription(instance)

    @action(detail=True, methods=["post"])
    def toggle(self, request, pk=None):
        subscription = self.get_object()
        subscription = set_active(subscription, not subscription.is_active)
        return Response(SubscriptionSerializer(subscription).data)

    @action(detail=False, methods=["get"])
    def recommended(self, request):
        company = require_company(request.user)
        leads = get_recommended_leads(company)
        context = self.get_serializer_context()
        context["recommended_ids"] = {lead.id for lead in leads}
        return Response(MarketplaceLeadSerializer(leads, many=True, context=context).data)
