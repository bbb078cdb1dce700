'''
Materials and class documents: metadata rows in the database, the files
themselves in FileStorage.
'''
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, UploadFile
from sqlalchemy import select, delete, or_, event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from ..database.engine import get_db_session
from ..database import models as db_models
from ..models import materials as material_models
from ..common.exceptions import ValidationError, NotFoundError
from ..common.storage import FileStorage, StoredFile, get_file_storage
from ..common.logger import log

# file_type of a document created without an attachment
LINK_FILE_TYPE = "link/text"

# session.info key holding (storage, file_url) pairs to remove once the transaction commits
PENDING_FILE_DELETES = "pending_file_deletes"


def _remove_pending_files(session: Session) -> None:
    for storage, file_url in session.info.pop(PENDING_FILE_DELETES, []):
        storage.delete_by_url(file_url)


def _forget_pending_files(session: Session) -> None:
    dropped = session.info.pop(PENDING_FILE_DELETES, [])
    if dropped:
        log.info(f"Transaction rolled back, keeping {len(dropped)} stored file(s).")


class MaterialService:
    """
    Service for uploading, listing and deleting materials.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        storage: Annotated[FileStorage, Depends(get_file_storage)]
    ):
        self.db = db
        self.storage = storage

    # --- 1. Internal Helpers ---

    async def _ensure_references(self, data: material_models.MaterialWrite) -> None:
        checks = (
            (db_models.Classes, data.class_id, "Class not found."),
            (db_models.Groups, data.group_id, "Group not found."),
            (db_models.Subjects, data.subject_id, "Subject not found."),
        )
        for model, ref_id, message in checks:
            if ref_id is not None and await self.db.get(model, ref_id) is None:
                raise NotFoundError(message)

    async def _persist(self, material: db_models.Materials, stored: Optional[StoredFile]) -> None:
        """Flushes the row; a file stored for it is removed again if that fails."""
        try:
            await self.db.flush()
        except Exception:
            if stored is not None:
                stored.path.unlink(missing_ok=True)
                log.warning(f"Removed orphaned upload '{stored.filename}' after a failed write.")
            raise

    async def _delete(self, material_id: UUID, not_found_message: str) -> None:
        """Deletes the row and then the file it pointed to."""
        result = await self.db.execute(
            delete(db_models.Materials)
            .where(db_models.Materials.id == material_id)
            .returning(db_models.Materials.file_url)
            .execution_options(synchronize_session=False)
        )
        row = result.first()
        if row is None:
            raise NotFoundError(not_found_message)
        self._delete_file_after_commit(row.file_url)
        log.info(f"Deleted material {material_id}.")

    def _delete_file_after_commit(self, file_url: Optional[str]) -> None:
        """The file stays on disk until the transaction that dropped its reference commits."""
        if not file_url:
            return
        session = self.db.sync_session
        session.info.setdefault(PENDING_FILE_DELETES, []).append((self.storage, file_url))
        if not event.contains(session, "after_commit", _remove_pending_files):
            event.listen(session, "after_commit", _remove_pending_files)
            event.listen(session, "after_rollback", _forget_pending_files)

    # --- 2. Admin Documents ---

    async def list_documents(self) -> list[material_models.DocumentRead]:
        log.info("Fetching all documents.")
        stmt = (
            select(
                db_models.Materials,
                db_models.Classes.name.label("class_name"),
                db_models.Subjects.name.label("subject_name"),
            )
            .outerjoin(db_models.Classes, db_models.Classes.id == db_models.Materials.class_id)
            .outerjoin(db_models.Subjects, db_models.Subjects.id == db_models.Materials.subject_id)
            .order_by(db_models.Materials.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [
            material_models.DocumentRead(
                **material_models.MaterialRead.model_validate(material).model_dump(),
                class_name=class_name,
                subject_name=subject_name,
            )
            for material, class_name, subject_name in result.all()
        ]

    async def create_document(
        self,
        data: material_models.MaterialWrite,
        upload: Optional[UploadFile],
        uploaded_by: UUID
    ) -> material_models.MaterialRead:
        """
        Creates a document. The attachment is optional: without one the
        document is a plain text/link entry.
        """
        log.info(f"Creating document '{data.title}' (attachment: {upload is not None}).")
        await self._ensure_references(data)
        stored = await self.storage.save(upload, field_name="file") if upload is not None else None

        material = db_models.Materials(
            title=data.title,
            description=data.description,
            class_id=data.class_id,
            subject_id=data.subject_id,
            file_url=stored.url if stored else None,
            file_type=stored.mime_type if stored else LINK_FILE_TYPE,
            uploaded_by=uploaded_by,
        )
        self.db.add(material)
        await self._persist(material, stored)
        return material_models.MaterialRead.model_validate(material)

    async def update_document(
        self,
        document_id: UUID,
        data: material_models.MaterialWrite,
        upload: Optional[UploadFile]
    ) -> material_models.MaterialRead:
        """
        Updates a document's metadata and, when a new file is sent, swaps the
        attachment. The old file is deleted only once the new reference is committed.
        """
        log.info(f"Updating document {document_id}.")
        try:
            material = await self.db.get(db_models.Materials, document_id)
            if material is None:
                raise NotFoundError("Document not found.")
            await self._ensure_references(data)

            stored = await self.storage.save(upload, field_name="file") if upload is not None else None
            old_file_url = material.file_url

            material.title = data.title
            material.description = data.description
            material.class_id = data.class_id
            material.subject_id = data.subject_id
            if stored is not None:
                material.file_url = stored.url
                material.file_type = stored.mime_type
            await self._persist(material, stored)

            if stored is not None:
                self._delete_file_after_commit(old_file_url)
            return material_models.MaterialRead.model_validate(material)
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error updating document {document_id}: {e}", exc_info=True)
            raise

    async def delete_document(self, document_id: UUID) -> None:
        log.info(f"Deleting document {document_id}.")
        await self._delete(document_id, "Document not found.")

    # --- 3. Admin Materials ---

    async def list_materials(self) -> list[material_models.MaterialRead]:
        result = await self.db.execute(
            select(db_models.Materials).order_by(db_models.Materials.created_at.desc())
        )
        return [material_models.MaterialRead.model_validate(m) for m in result.scalars().all()]

    async def create_material(
        self,
        data: material_models.MaterialWrite,
        upload: Optional[UploadFile],
        uploaded_by: UUID
    ) -> material_models.MaterialRead:
        log.info(f"Uploading material '{data.title}'.")
        if upload is None:
            raise ValidationError("A file is required.")
        await self._ensure_references(data)
        stored = await self.storage.save(upload, field_name="file")

        material = db_models.Materials(
            title=data.title,
            description=data.description,
            class_id=data.class_id,
            group_id=data.group_id,
            subject_id=data.subject_id,
            file_url=stored.url,
            file_type=stored.mime_type,
            uploaded_by=uploaded_by,
        )
        self.db.add(material)
        await self._persist(material, stored)
        return material_models.MaterialRead.model_validate(material)

    async def delete_material(self, material_id: UUID) -> None:
        log.info(f"Deleting material {material_id}.")
        await self._delete(material_id, "Material not found.")

    # --- 4. Student Views ---

    async def list_student_materials(self, student_id: UUID) -> list[material_models.MaterialRead]:
        """Materials scoped to a group the student is in, or to that group's class."""
        log.info(f"Fetching materials for student {student_id}.")
        group_ids = select(db_models.StudentGroups.group_id).where(
            db_models.StudentGroups.student_id == student_id
        )
        class_ids = select(db_models.Groups.class_id).where(db_models.Groups.id.in_(group_ids))
        result = await self.db.execute(
            select(db_models.Materials)
            .filter(or_(
                db_models.Materials.group_id.in_(group_ids),
                db_models.Materials.class_id.in_(class_ids),
            ))
            .order_by(db_models.Materials.created_at.desc())
        )
        return [material_models.MaterialRead.model_validate(m) for m in result.scalars().all()]

    async def list_student_documents(self, student_id: UUID) -> list[material_models.StudentDocumentRead]:
        """Documents attached to classes the student is enrolled in, newest first."""
        log.info(f"Fetching documents for student {student_id}.")
        stmt = (
            select(
                db_models.Materials.id,
                db_models.Materials.title,
                db_models.Materials.description,
                db_models.Materials.file_url,
                db_models.Materials.created_at,
                db_models.Materials.subject_id,
                db_models.Subjects.name.label("subject_name"),
                db_models.Classes.id.label("class_id"),
                db_models.Classes.name.label("class_name"),
            )
            .join(db_models.Classes, db_models.Classes.id == db_models.Materials.class_id)
            .join(db_models.ClassEnrollments, db_models.ClassEnrollments.class_id == db_models.Classes.id)
            .outerjoin(db_models.Subjects, db_models.Subjects.id == db_models.Materials.subject_id)
            .filter(db_models.ClassEnrollments.student_id == student_id)
            .order_by(db_models.Materials.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [material_models.StudentDocumentRead(**row) for row in result.mappings().all()]
