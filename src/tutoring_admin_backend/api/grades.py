'''
API endpoints for exams and grades.
'''
from typing import Annotated, List
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..models import grades as grade_models
from ..models.common import MessageResponse
from ..models.token import CurrentUser
from ..services.grade_service import GradeService
from ..services.security import require_admin, require_student


class GradesAPI:
    """
    A class to encapsulate exam and grade endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api",
            tags=["Grades"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/admin/grades/classes/{class_id}/exams",
                self.list_exams_for_class,
                methods=["GET"],
                response_model=List[grade_models.ExamRead])
        self.router.add_api_route(
                "/admin/grades/exams",
                self.create_exam,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=grade_models.ExamRead)
        self.router.add_api_route(
                "/admin/grades/exams/{exam_id}",
                self.update_exam,
                methods=["PUT"],
                response_model=grade_models.ExamRead)
        self.router.add_api_route(
                "/admin/grades/exams/{exam_id}",
                self.delete_exam,
                methods=["DELETE"],
                response_model=MessageResponse)
        self.router.add_api_route(
                "/admin/grades/exams/{exam_id}/grades",
                self.get_exam_grades,
                methods=["GET"],
                response_model=List[grade_models.ExamGradeRosterEntry])
        self.router.add_api_route(
                "/admin/grades/exams/{exam_id}/grades",
                self.save_exam_grades,
                methods=["POST"],
                response_model=MessageResponse)
        self.router.add_api_route(
                "/student/grades",
                self.list_my_grades,
                methods=["GET"],
                response_model=List[grade_models.StudentGradeRead])

    async def list_exams_for_class(
        self,
        class_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        grade_service: Annotated[GradeService, Depends(GradeService)]
    ):
        return await grade_service.list_exams_for_class(class_id)

    async def create_exam(
        self,
        exam_data: grade_models.ExamCreate,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        grade_service: Annotated[GradeService, Depends(GradeService)]
    ):
        return await grade_service.create_exam(exam_data)

    async def update_exam(
        self,
        exam_id: UUID,
        exam_data: grade_models.ExamUpdate,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        grade_service: Annotated[GradeService, Depends(GradeService)]
    ):
        return await grade_service.update_exam(exam_id, exam_data)

    async def delete_exam(
        self,
        exam_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        grade_service: Annotated[GradeService, Depends(GradeService)]
    ):
        await grade_service.delete_exam(exam_id)
        return MessageResponse(message="Exam deleted successfully.")

    async def get_exam_grades(
        self,
        exam_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        grade_service: Annotated[GradeService, Depends(GradeService)]
    ):
        return await grade_service.get_exam_grades(exam_id)

    async def save_exam_grades(
        self,
        exam_id: UUID,
        grades_data: grade_models.GradesSave,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        grade_service: Annotated[GradeService, Depends(GradeService)]
    ):
        """
        Saves a batch of grades atomically. Entries with an empty score
        remove the student's grade.
        """
        await grade_service.save_exam_grades(exam_id, grades_data.grades)
        return MessageResponse(message="Grades saved successfully.")

    async def list_my_grades(
        self,
        current_user: Annotated[CurrentUser, Depends(require_student)],
        grade_service: Annotated[GradeService, Depends(GradeService)]
    ):
        return await grade_service.list_student_grades(current_user.id)


# Instantiate the class and export its router
grades_api = GradesAPI()
router = grades_api.router
