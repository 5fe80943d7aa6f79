import logging

from fastapi import APIRouter, Depends, HTTPException

from form_designer.api.deps import field_out, get_store
from form_designer.api.schemas import TextFieldCreate, TextFieldOut, TextFieldUpdate
from form_designer.errors import NotFoundError, ValidationError
from form_designer.storage import FieldStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/text-fields", response_model=TextFieldOut, status_code=201)
def create_text_field(body: TextFieldCreate, store: FieldStore = Depends(get_store)):
    data = body.model_dump()
    document_id = data.pop("document_id")
    try:
        field = store.create_field(document_id, **data)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    logger.info("POST /text-fields - %s on document %s", field.id, document_id)
    return field_out(field)


@router.patch("/text-fields/{field_id}", response_model=TextFieldOut)
def update_text_field(field_id: str, body: TextFieldUpdate,
                      store: FieldStore = Depends(get_store)):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    try:
        field = store.update_field(field_id, **changes)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Text field not found")
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    logger.info("PATCH /text-fields/%s - %s", field_id, changes)
    return field_out(field)


@router.delete("/text-fields/{field_id}")
def delete_text_field(field_id: str, store: FieldStore = Depends(get_store)):
    store.delete_field(field_id)
    logger.info("DELETE /text-fields/%s", field_id)
    return {"ok": True}
