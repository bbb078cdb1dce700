'''
API endpoints for the admin dashboard and the subject catalogue.
'''
from typing import Annotated, List
from fastapi import APIRouter, Depends

from ..models import classes as class_models
from ..models import dashboard as dashboard_models
from ..models.token import CurrentUser
from ..services.class_service import ClassService
from ..services.dashboard_service import DashboardService
from ..services.security import get_current_user, require_admin


class DashboardAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/api",
            tags=["Dashboard"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/admin/dashboard",
                self.get_admin_dashboard,
                methods=["GET"],
                response_model=dashboard_models.AdminDashboard)
        self.router.add_api_route(
                "/subjects",
                self.list_subjects,
                methods=["GET"],
                response_model=List[class_models.SubjectRead])

    async def get_admin_dashboard(
        self,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        dashboard_service: Annotated[DashboardService, Depends(DashboardService)]
    ):
        """
        Student, class and material counts plus paid and unpaid tuition totals.
        """
        return await dashboard_service.get_admin_dashboard()

    async def list_subjects(
        self,
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ):
        return await class_service.list_subjects()


# Instantiate the class and export its router
dashboard_api = DashboardAPI()
router = dashboard_api.router
