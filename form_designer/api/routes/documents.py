import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from form_designer import documents
from form_designer.api.deps import document_out, field_out, get_settings, get_store
from form_designer.api.schemas import DocumentOut, TextFieldOut
from form_designer.errors import ExportFailure, NotFoundError, ValidationError
from form_designer.pdf_exporter import export_document
from form_designer.settings import DesignerSettings
from form_designer.storage import FieldStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/documents", response_model=DocumentOut, status_code=201)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    store: FieldStore = Depends(get_store),
    settings: DesignerSettings = Depends(get_settings),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    data = await file.read()
    logger.info("POST /documents - %s (%s, %d bytes)",
                file.filename, file.content_type, len(data))
    try:
        document = documents.ingest_upload(
            store, file.filename or "upload", file.content_type, data, settings
        )
    except ValidationError as exc:
        logger.warning("POST /documents - rejected %s: %s", file.filename, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    return document_out(document)


@router.get("/documents", response_model=List[DocumentOut])
def list_documents(store: FieldStore = Depends(get_store)):
    return [document_out(d) for d in store.list_documents()]


@router.get("/documents/{document_id}", response_model=DocumentOut)
def get_document(document_id: str, store: FieldStore = Depends(get_store)):
    try:
        return document_out(store.get_document(document_id))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")


@router.delete("/documents/{document_id}")
def delete_document(document_id: str, store: FieldStore = Depends(get_store)):
    try:
        store.delete_document(document_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    logger.info("DELETE /documents/%s - removed with its fields", document_id)
    return {"ok": True}


@router.get("/documents/{document_id}/file")
def get_document_file(document_id: str, store: FieldStore = Depends(get_store)):
    try:
        data = store.get_document_bytes(document_id)
        mime_type = store.get_document_mime_type(document_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    return Response(content=data, media_type=mime_type)


@router.get("/documents/{document_id}/text-fields", response_model=List[TextFieldOut])
def list_text_fields(document_id: str, store: FieldStore = Depends(get_store)):
    try:
        store.get_document(document_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    return [field_out(f) for f in store.list_fields_by_document(document_id)]


@router.post("/documents/{document_id}/export")
def export_fillable_pdf(
    document_id: str,
    store: FieldStore = Depends(get_store),
    settings: DesignerSettings = Depends(get_settings),
):
    logger.info("POST /documents/%s/export", document_id)
    try:
        filename, pdf = export_document(store, document_id, settings)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    except ExportFailure:
        raise HTTPException(status_code=500, detail="Failed to export PDF")
    logger.info("POST /documents/%s/export - %s (%d bytes)", document_id, filename, len(pdf))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
