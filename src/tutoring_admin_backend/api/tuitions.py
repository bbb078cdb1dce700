'''
API endpoints for tuition batches and tuition records.
'''
from typing import Annotated, List
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..models import tuition as tuition_models
from ..models.common import MessageResponse
from ..models.token import CurrentUser
from ..services.security import require_admin, require_student
from ..services.tuition_service import TuitionService


class TuitionsAPI:
    """
    A class to encapsulate tuition batch and record endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api",
            tags=["Tuitions"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        # Batches
        self.router.add_api_route(
                "/admin/tuition-batches",
                self.create_batch,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=tuition_models.TuitionBatchCreated)
        self.router.add_api_route(
                "/admin/tuition-batches/{class_id}",
                self.list_batches,
                methods=["GET"],
                response_model=List[tuition_models.TuitionBatchSummary])
        self.router.add_api_route(
                "/admin/tuition-batches/{batch_id}",
                self.delete_batch,
                methods=["DELETE"],
                response_model=MessageResponse)

        # Records
        self.router.add_api_route(
                "/admin/tuitions/{batch_id}",
                self.list_batch_tuitions,
                methods=["GET"],
                response_model=List[tuition_models.BatchRosterEntry])
        self.router.add_api_route(
                "/admin/tuitions/{record_id}/pay",
                self.mark_paid,
                methods=["PUT"],
                response_model=tuition_models.TuitionRecordRead)
        self.router.add_api_route(
                "/admin/tuitions/{record_id}/unpay",
                self.mark_unpaid,
                methods=["PUT"],
                response_model=tuition_models.TuitionRecordRead)

        # Student view
        self.router.add_api_route(
                "/student/tuitions",
                self.list_my_tuitions,
                methods=["GET"],
                response_model=List[tuition_models.StudentTuitionRead])

    async def create_batch(
        self,
        batch_data: tuition_models.TuitionBatchCreate,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        """
        Issues a batch for a class: one unpaid record per currently enrolled student.
        """
        return await tuition_service.create_batch(batch_data)

    async def list_batches(
        self,
        class_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        return await tuition_service.list_batches(class_id)

    async def delete_batch(
        self,
        batch_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        await tuition_service.delete_batch(batch_id)
        return MessageResponse(message="Tuition batch deleted successfully.")

    async def list_batch_tuitions(
        self,
        batch_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        """
        Returns the batch roster ordered by student name.

        **Not read-only:** before listing, the batch is reconciled with the
        class's current enrollment. Newly enrolled students get an unpaid
        record and records of students who left the class are deleted.
        Repeating the call without enrollment changes has no further effect.
        """
        return await tuition_service.sync_and_list_batch_tuitions(batch_id)

    async def mark_paid(
        self,
        record_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        return await tuition_service.mark_paid(record_id)

    async def mark_unpaid(
        self,
        record_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        return await tuition_service.mark_unpaid(record_id)

    async def list_my_tuitions(
        self,
        current_user: Annotated[CurrentUser, Depends(require_student)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        return await tuition_service.list_student_tuitions(current_user.id)


# Instantiate the class and export its router
tuitions_api = TuitionsAPI()
router = tuitions_api.router
