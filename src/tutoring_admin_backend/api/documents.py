'''
API endpoints for class documents: admin management and the student's list.
'''
from typing import Annotated, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, UploadFile, status

from ..models import materials as material_models
from ..models.common import MessageResponse
from ..models.token import CurrentUser
from ..services.material_service import MaterialService
from ..services.security import require_admin, require_student
from .materials import material_form


class DocumentsAPI:
    """
    A class to encapsulate document endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api",
            tags=["Documents"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/admin/documents",
                self.list_documents,
                methods=["GET"],
                response_model=List[material_models.DocumentRead])
        self.router.add_api_route(
                "/admin/documents",
                self.create_document,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=material_models.DocumentSaved)
        self.router.add_api_route(
                "/admin/documents/{document_id}",
                self.update_document,
                methods=["PUT"],
                response_model=material_models.DocumentSaved)
        self.router.add_api_route(
                "/admin/documents/{document_id}",
                self.delete_document,
                methods=["DELETE"],
                response_model=MessageResponse)
        self.router.add_api_route(
                "/student/documents",
                self.list_my_documents,
                methods=["GET"],
                response_model=List[material_models.StudentDocumentRead])

    async def list_documents(
        self,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ):
        return await material_service.list_documents()

    async def create_document(
        self,
        data: Annotated[material_models.MaterialWrite, Depends(material_form)],
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        material_service: Annotated[MaterialService, Depends(MaterialService)],
        file: Annotated[Optional[UploadFile], File()] = None
    ):
        """
        Creates a document. The file is optional; without one the document is
        stored as a text/link entry.
        """
        document = await material_service.create_document(data, file, current_user.id)
        return material_models.DocumentSaved(message="Document uploaded successfully.", document=document)

    async def update_document(
        self,
        document_id: UUID,
        data: Annotated[material_models.MaterialWrite, Depends(material_form)],
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        material_service: Annotated[MaterialService, Depends(MaterialService)],
        file: Annotated[Optional[UploadFile], File()] = None
    ):
        """
        Updates a document. Sending a new file replaces and deletes the old one.
        """
        document = await material_service.update_document(document_id, data, file)
        return material_models.DocumentSaved(message="Document updated successfully.", document=document)

    async def delete_document(
        self,
        document_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ):
        await material_service.delete_document(document_id)
        return MessageResponse(message="Document deleted successfully.")

    async def list_my_documents(
        self,
        current_user: Annotated[CurrentUser, Depends(require_student)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ):
        return await material_service.list_student_documents(current_user.id)


# Instantiate the class and export its router
documents_api = DocumentsAPI()
router = documents_api.router
