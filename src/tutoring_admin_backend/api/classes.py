'''
Admin endpoints for classes, their groups and enrolled students.
'''
from typing import Annotated, List
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..models import classes as class_models
from ..models.common import MessageResponse
from ..models.token import CurrentUser
from ..services.class_service import ClassService
from ..services.student_service import StudentService
from ..services.security import require_admin


class ClassesAPI:
    """
    A class to encapsulate admin CRUD endpoints for classes and groups.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/admin/classes",
            tags=["Admin: Classes"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.list_classes,
                methods=["GET"],
                response_model=List[class_models.ClassWithGroupsRead])
        self.router.add_api_route(
                "",
                self.create_class,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=class_models.ClassRead)
        self.router.add_api_route(
                "/groups/{group_id}",
                self.delete_group,
                methods=["DELETE"],
                response_model=MessageResponse)
        self.router.add_api_route(
                "/{class_id}",
                self.update_class,
                methods=["PUT"],
                response_model=class_models.ClassRead)
        self.router.add_api_route(
                "/{class_id}",
                self.delete_class,
                methods=["DELETE"],
                response_model=MessageResponse)
        self.router.add_api_route(
                "/{class_id}/groups",
                self.create_group,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=class_models.GroupRead)
        self.router.add_api_route(
                "/{class_id}/students",
                self.list_class_students,
                methods=["GET"],
                response_model=List[class_models.ClassStudentRead])
        self.router.add_api_route(
                "/{class_id}/students",
                self.add_student_to_class,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=class_models.ClassStudentRead)

    async def list_classes(
        self,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ):
        """
        Lists every class, newest first, with its groups and headcounts.
        """
        return await class_service.list_classes()

    async def create_class(
        self,
        class_data: class_models.ClassWrite,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ):
        return await class_service.create_class(class_data)

    async def update_class(
        self,
        class_id: UUID,
        class_data: class_models.ClassWrite,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ):
        """
        Updates a class. Pending enrollment payments are re-priced to the new fee.
        """
        return await class_service.update_class(class_id, class_data)

    async def delete_class(
        self,
        class_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ):
        """
        Deletes a class with its batches, records and enrollments.
        Students enrolled in no other class are deleted too.
        Materials linked to the class are kept and unlinked.
        """
        await class_service.delete_class(class_id)
        return MessageResponse(message="Class deleted successfully.")

    async def create_group(
        self,
        class_id: UUID,
        group_data: class_models.GroupCreate,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ):
        return await class_service.create_group(class_id, group_data)

    async def delete_group(
        self,
        group_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        class_service: Annotated[ClassService, Depends(ClassService)]
    ):
        await class_service.delete_group(group_id)
        return MessageResponse(message="Group deleted successfully.")

    async def list_class_students(
        self,
        class_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        return await student_service.list_class_students(class_id)

    async def add_student_to_class(
        self,
        class_id: UUID,
        enrollment: class_models.AddStudentToClass,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        """
        Enrolls an existing student and records their baseline enrollment payment.
        """
        return await student_service.add_student_to_class(class_id, enrollment.student_id)


# Instantiate the class and export its router
classes_api = ClassesAPI()
router = classes_api.router
