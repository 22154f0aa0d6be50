"""
Dashboard endpoints.
"""
from fastapi import APIRouter, Depends

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import DashboardOverview, DashboardStats, Permission
from edumanage.services import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

can_view = require_permission(Permission.VIEW_ANALYTICS)


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(_: CurrentUser = Depends(can_view)) -> DashboardStats:
    return dashboard_service.get_stats()


@router.get("/overview", response_model=DashboardOverview)
def dashboard_overview(_: CurrentUser = Depends(can_view)) -> DashboardOverview:
    return dashboard_service.get_overview()
