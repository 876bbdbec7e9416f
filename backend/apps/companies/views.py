# apps/companies/views.py

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Company
from .serializers import (
    BalanceAdjustmentSerializer,
    CompanySerializer,
    LedgerEntrySerializer,
    PlanChangeSerializer,
    SignupSerializer,
)
from .selectors import get_ledger_for_company, require_company
from .services import adjust_balance, change_plan, register_company, rotate_api_key, set_active


class SignupView(APIView):
    """
    POST /api/v1/auth/signup/
    {"company_name", "tax_id", "email", "password", "plan"}
    """

    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        company, token = register_company(
            email=data["email"],
            password=data["password"],
            name=data["company_name"],
            tax_id=data["tax_id"],
            plan=data["plan"],
        )
        return Response(
            {"company": CompanySerializer(company).data, "api_key": token.key},
            status=status.HTTP_201_CREATED,
        )


class CompanyViewSet(viewsets.ReadOnlyModelViewSet):
    """
    API endpoints for buyer companies.

    list:           GET    /api/v1/companies/                     (admin)
    retrieve:       GET    /api/v1/companies/{id}/                (admin)
    adjust_balance: POST   /api/v1/companies/{id}/adjust_balance/ (admin)
    change_plan:    POST   /api/v1/companies/{id}/change_plan/    (admin)
    ledger:         GET    /api/v1/companies/{id}/ledger/         (admin)
    toggle_active:  POST   /api/v1/companies/{id}/toggle_active/  (admin)
    me:             GET    /api/v1/companies/me/
    api_key:        POST   /api/v1/companies/me/api_key/
    """

    queryset = Company.objects.select_related("user").order_by("name")
    serializer_class = CompanySerializer
    permission_classes = [permissions.IsAdminUser]

    def get_permissions(self):
        if self.action in ("me", "api_key"):
            return [permissions.IsAuthenticated()]
        return super().get_permissions()

    @action(detail=False, methods=["get"])
    def me(self, request):
        """Current company, including a fresh balance (used by recharge polling)."""
        company = require_company(request.user)
        return Response(CompanySerializer(company).data)

    @action(detail=False, methods=["post"], url_path="me/api_key")
    def api_key(self, request):
        """Issue a new API key for the current company's user."""
        require_company(request.user)
        token = rotate_api_key(request.user)
        return Response({"api_key": token.key}, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def adjust_balance(self, request, pk=None):
        company = self.get_object()
        serializer = BalanceAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = adjust_balance(company.id, serializer.validated_data["amount"])
        return Response(LedgerEntrySerializer(entry).data)

    @action(detail=True, methods=["post"])
    def change_plan(self, request, pk=None):
        company = self.get_object()
        serializer = PlanChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        company = change_plan(company, serializer.validated_data["plan"])
        return Response(CompanySerializer(company).data)

    @action(detail=True, methods=["get"])
    def ledger(self, request, pk=None):
        company = self.get_object()
        entries = get_ledger_for_company(company)[:100]
        return Response(LedgerEntrySerializer(entries, many=True).data)

    @action(detail=True, methods=["post"])
    def toggle_active(self, request, pk=None):
        company = self.get_object()
        company = set_active(company, not company.is_active)
        return Response(CompanySerializer(company).data)
