'''
API endpoints for uploaded materials.
'''
from typing import Annotated, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import ValidationError as PydanticValidationError

from ..common.exceptions import ValidationError
from ..models import materials as material_models
from ..models.common import MessageResponse
from ..models.token import CurrentUser
from ..services.material_service import MaterialService
from ..services.security import require_admin, require_student


def material_form(
    title: Annotated[str, Form()] = "",
    description: Annotated[Optional[str], Form()] = None,
    class_id: Annotated[Optional[str], Form()] = None,
    group_id: Annotated[Optional[str], Form()] = None,
    subject_id: Annotated[Optional[str], Form()] = None,
) -> material_models.MaterialWrite:
    """
    Reads material metadata from multipart form fields.
    """
    try:
        return material_models.MaterialWrite(
            title=title,
            description=description,
            class_id=class_id,
            group_id=group_id,
            subject_id=subject_id,
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"{field}: {first['msg']}")


class MaterialsAPI:
    """
    A class to encapsulate material upload and listing endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/materials",
            tags=["Materials"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/admin",
                self.list_all_materials,
                methods=["GET"],
                response_model=List[material_models.MaterialRead])
        self.router.add_api_route(
                "",
                self.upload_material,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=material_models.MaterialSaved)
        self.router.add_api_route(
                "/{material_id}",
                self.delete_material,
                methods=["DELETE"],
                response_model=MessageResponse)
        self.router.add_api_route(
                "",
                self.list_my_materials,
                methods=["GET"],
                response_model=List[material_models.MaterialRead])

    async def list_all_materials(
        self,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ):
        return await material_service.list_materials()

    async def upload_material(
        self,
        data: Annotated[material_models.MaterialWrite, Depends(material_form)],
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        material_service: Annotated[MaterialService, Depends(MaterialService)],
        file: Annotated[Optional[UploadFile], File()] = None
    ):
        """
        Uploads one file (images, video, PDF or Office documents, up to the
        configured size) optionally scoped to a class, group or subject.
        """
        material = await material_service.create_material(data, file, current_user.id)
        return material_models.MaterialSaved(message="Material uploaded successfully.", material=material)

    async def delete_material(
        self,
        material_id: UUID,
        current_user: Annotated[CurrentUser, Depends(require_admin)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ):
        """
        Deletes the material and its stored file.
        """
        await material_service.delete_material(material_id)
        return MessageResponse(message="Material deleted successfully.")

    async def list_my_materials(
        self,
        current_user: Annotated[CurrentUser, Depends(require_student)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ):
        """
        Materials for the groups the student is in and for those groups' classes.
        """
        return await material_service.list_student_materials(current_user.id)


# Instantiate the class and export its router
materials_api = MaterialsAPI()
router = materials_api.router
