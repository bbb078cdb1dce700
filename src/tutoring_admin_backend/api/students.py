'''
Student endpoints: the admin roster and account management under
/api/admin/students, the paginated directory and group placement under
/api/students, and the student's own views.
'''
from typing import Annotated, List
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from ..models import user as user_models
from ..models import dashboard as dashboard_models
from ..models.common import MessageResponse
from ..models.token import CurrentUser
from ..services.student_service import StudentService
from ..services.student_portal_service import StudentPortalService
from ..services.security import get_current_user, require_admin, require_student


class AdminStudentsAPI:
    """
    A class to encapsulate the admin's student account endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/admin/students",
            tags=["Admin: Students"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "",
                self.list_students,
                methods=["GET"],
                response_model=List[user_models.StudentListItem])
        self.router.add_api_route(
                "",
                self.create_student,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=user_models.StudentCreated)
        self.router.add_api_route(
                "/{student_id}",
                self.update_student,
                methods=["PUT"],
                response_model=user_models.StudentRead)
        self.router.add_api_route(
                "/{student_id}",
                self.delete_student,
                methods=["DELETE"],
                response_model=MessageResponse)

    async def list_students(
        self,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        """
        Every student with their classes and the number of unpaid tuition records.
        """
        return await student_service.list_students()

    async def create_student(
        self,
        student_data: user_models.StudentCreate,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        """
        Creates a student enrolled in one or more classes.
        If no password is given a generated one is returned in this response only.
        """
        return await student_service.create_student(student_data)

    async def update_student(
        self,
        student_id: UUID,
        student_data: user_models.StudentUpdate,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        return await student_service.update_student(student_id, student_data)

    async def delete_student(
        self,
        student_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        await student_service.delete_student(student_id)
        return MessageResponse(message="Student deleted successfully.")


class StudentsAPI:
    """
    A class to encapsulate the student directory, group placement and
    the student's own read endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/students",
            tags=["Students"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "",
                self.list_students_page,
                methods=["GET"],
                response_model=user_models.StudentDirectoryPage)
        self.router.add_api_route(
                "/me",
                self.get_my_profile,
                methods=["GET"],
                response_model=user_models.UserRead)
        self.router.add_api_route(
                "/me/classes",
                self.get_my_classes,
                methods=["GET"],
                response_model=List[dashboard_models.MyClassRead])
        self.router.add_api_route(
                "/dashboard",
                self.get_dashboard,
                methods=["GET"],
                response_model=dashboard_models.StudentDashboard)
        self.router.add_api_route(
                "/{student_id}/groups/{group_id}",
                self.assign_to_group,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=user_models.GroupMembershipResponse)
        self.router.add_api_route(
                "/{student_id}/groups/{group_id}",
                self.remove_from_group,
                methods=["DELETE"],
                response_model=MessageResponse)
        self.router.add_api_route(
                "/{student_id}/groups/{old_group_id}/transfer/{new_group_id}",
                self.transfer_group,
                methods=["PUT"],
                response_model=user_models.GroupMembershipResponse)

    async def list_students_page(
        self,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)],
        page: Annotated[int, Query(ge=1)] = 1,
        limit: Annotated[int, Query(ge=1, le=100)] = 20
    ):
        return await student_service.list_students_page(page, limit)

    async def get_my_profile(
        self,
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
        portal_service: Annotated[StudentPortalService, Depends(StudentPortalService)]
    ):
        return await portal_service.get_profile(current_user.id)

    async def get_my_classes(
        self,
        current_user: Annotated[CurrentUser, Depends(require_student)],
        portal_service: Annotated[StudentPortalService, Depends(StudentPortalService)]
    ):
        """
        Classes the student belongs to through enrollment, a group or a
        tuition batch, each with its classmates.
        """
        return await portal_service.get_my_classes(current_user.id)

    async def get_dashboard(
        self,
        current_user: Annotated[CurrentUser, Depends(require_student)],
        portal_service: Annotated[StudentPortalService, Depends(StudentPortalService)]
    ):
        return await portal_service.get_dashboard(current_user.id)

    async def assign_to_group(
        self,
        student_id: UUID,
        group_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        entry = await student_service.assign_to_group(student_id, group_id)
        return user_models.GroupMembershipResponse(message="Assigned successfully.", entry=entry)

    async def transfer_group(
        self,
        student_id: UUID,
        old_group_id: UUID,
        new_group_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        entry = await student_service.transfer_group(student_id, old_group_id, new_group_id)
        return user_models.GroupMembershipResponse(message="Transferred successfully.", entry=entry)

    async def remove_from_group(
        self,
        student_id: UUID,
        group_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        await student_service.remove_from_group(student_id, group_id)
        return MessageResponse(message="Removed student from group successfully.")


# Instantiate the classes and export their routers
admin_students_api = AdminStudentsAPI()
admin_router = admin_students_api.router

students_api = StudentsAPI()
router = students_api.router
