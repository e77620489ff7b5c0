from django.urls import include, path
from rest_framework.routers import DefaultRouter

from asset.views import AssetViewSet
from compliance.views import (
    ChecklistView,
    ComplianceStatsView,
    ControlAssessmentViewSet,
    IsoControlViewSet,
    IsoDomainViewSet,
)
from core.views import AuditEventViewSet, OrganizationViewSet
from reporting.views import AuditFindingViewSet, AuditReportViewSet, DashboardView
from risk.views import RiskAssessmentViewSet, VulnerabilityViewSet

router = DefaultRouter()
router.register(r"organizations", OrganizationViewSet, basename="organization")
router.register(r"audit-events", AuditEventViewSet, basename="audit-event")
router.register(r"assets", AssetViewSet, basename="asset")
router.register(r"vulnerabilities", VulnerabilityViewSet, basename="vulnerability")
router.register(r"risk-assessments", RiskAssessmentViewSet, basename="risk-assessment")
router.register(r"iso-domains", IsoDomainViewSet, basename="iso-domain")
router.register(r"iso-controls", IsoControlViewSet, basename="iso-control")
router.register(r"control-assessments", ControlAssessmentViewSet, basename="control-assessment")
router.register(r"findings", AuditFindingViewSet, basename="finding")
router.register(r"reports", AuditReportViewSet, basename="report")

urlpatterns = [
    path("", include(router.urls)),
    path("compliance/stats", ComplianceStatsView.as_view(), name="compliance-stats"),
    path("compliance/checklist", ChecklistView.as_view(), name="compliance-checklist"),
    path("dashboard", DashboardView.as_view(), name="dashboard"),
]
