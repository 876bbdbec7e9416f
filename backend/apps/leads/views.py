# apps/leads/views.py

from decimal import Decimal

from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.companies.selectors import require_company
from apps.subscriptions.selectors import get_recommended_lead_ids

from .models import Lead
from .selectors import get_available_leads, get_purchases_for_company, search_leads
from .serializers import (
    BulkLeadTransitionSerializer,
    LeadCreateSerializer,
    LeadSerializer,
    LeadTransitionSerializer,
    MarketplaceLeadSerializer,
    PurchaseSerializer,
)
from .services import bulk_transition_leads, create_lead, mark_converted, purchase_lead, transition_lead


def _parse_number(raw, cast):
    """Query param to number; malformed values are ignored."""
    if raw in (None, ""):
        return None
    try:
        return cast(raw)
    except (ValueError, ArithmeticError):
        return None


class LeadViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Admin endpoints for leads.

    list:             GET    /api/v1/leads/
    create:           POST   /api/v1/leads/
    retrieve:         GET    /api/v1/leads/{id}/
    update:           PUT    /api/v1/leads/{id}/
    partial:          PATCH  /api/v1/leads/{id}/
    transition:       POST   /api/v1/leads/{id}/transition/
    bulk_transition:  POST   /api/v1/leads/bulk_transition/
    """

    queryset = Lead.objects.all().order_by("-created_at")
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    lookup_value_regex = r"\d+"

    # Search across text fields
    search_fields = ["name", "national_id", "email", "phone"]

    # Allow ordering by these fields
    ordering_fields = ["created_at", "price", "score", "requested_amount"]
    ordering = ["-created_at"]

    def get_serializer_class(self):
        if self.action == "create":
            return LeadCreateSerializer
        return LeadSerializer

    def get_queryset(self):
        """Apply additional filters from query params."""
        params = self.request.query_params
        return search_leads(
            status=params.get("status"),
            vertical=params.get("vertical"),
            risk=params.get("risk"),
            created_after=params.get("created_after"),
            created_before=params.get("created_before"),
        ).order_by("-created_at")

    def create(self, request, *args, **kwargs):
        serializer = LeadCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lead = create_lead(**serializer.validated_data)
        return Response(LeadSerializer(lead).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def transition(self, request, pk=None):
        serializer = LeadTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lead = transition_lead(int(pk), serializer.validated_data["status"])
        return Response(LeadSerializer(lead).data)

    @action(detail=False, methods=["post"])
    def bulk_transition(self, request):
        serializer = BulkLeadTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = bulk_transition_leads(
            serializer.validated_data["lead_ids"],
            serializer.validated_data["status"],
        )
        return Response(result)


class MarketplaceViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Buyer-facing marketplace.

    list:      GET    /api/v1/marketplace/
    retrieve:  GET    /api/v1/marketplace/{id}/
    purchase:  POST   /api/v1/marketplace/{id}/purchase/
    """

    serializer_class = MarketplaceLeadSerializer
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        params = self.request.query_params
        return get_available_leads(
            vertical=params.get("vertical"),
            risk=params.get("risk"),
            min_score=_parse_number(params.get("min_score"), int),
            max_price=_parse_number(params.get("max_price"), Decimal),
        )

    def list(self, request, *args, **kwargs):
        company = require_company(request.user)
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        leads = page if page is not None else list(queryset)

        context = self.get_serializer_context()
        context["recommended_ids"] = get_recommended_lead_ids(company, leads)
        serializer = MarketplaceLeadSerializer(leads, many=True, context=context)

        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)

    @action(detail=True, methods=["post"])
    def purchase(self, request, pk=None):
        company = require_company(request.user)
        purchase = purchase_lead(company.id, int(pk))
        return Response(PurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)


class PurchaseViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The current company's purchases.

    list:      GET    /api/v1/purchases/
    retrieve:  GET    /api/v1/purchases/{id}/
    convert:   POST   /api/v1/purchases/{id}/convert/
    """

    serializer_class = PurchaseSerializer
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return get_purchases_for_company(require_company(self.request.user))

    @action(detail=True, methods=["post"])
    def convert(self, request, pk=None):
        company = require_company(request.user)
        purchase = mark_converted(int(pk), company.id)
        return Response(PurchaseSerializer(purchase).data)
