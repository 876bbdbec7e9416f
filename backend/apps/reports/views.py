# apps/reports/views.py

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.companies.selectors import require_company

from .selectors import get_all_reports, get_reports_for_company
from .serializers import ReportCreateSerializer, ReportResolveSerializer, ReportSerializer
from .services import create_report, mark_in_review, resolve_report


class ReportViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Lead quality reports.

    list:      GET    /api/v1/reports/               own reports (all for admins)
    create:    POST   /api/v1/reports/
    retrieve:  GET    /api/v1/reports/{id}/
    review:    POST   /api/v1/reports/{id}/review/   (admin)
    resolve:   POST   /api/v1/reports/{id}/resolve/  (admin)
    """

    serializer_class = ReportSerializer
    lookup_value_regex = r"\d+"

    def get_permissions(self):
        if self.action in ("review", "resolve"):
            return [permissions.IsAdminUser()]
        return super().get_permissions()

    def get_queryset(self):
        user = self.request.user
        if user.is_staff:
            return get_all_reports(status=self.request.query_params.get("status"))
        return get_reports_for_company(require_company(user))

    def create(self, request, *args, **kwargs):
        company = require_company(request.user)
        serializer = ReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = create_report(
            company,
            lead_id=serializer.validated_data["lead"],
            reason=serializer.validated_data["reason"],
            comment=serializer.validated_data["comment"],
        )
        return Response(ReportSerializer(report).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def review(self, request, pk=None):
        report = mark_in_review(int(pk))
        return Response(ReportSerializer(report).data)

    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        serializer = ReportResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = resolve_report(int(pk), serializer.validated_data["decision"])
        return Response(ReportSerializer(report).data)
