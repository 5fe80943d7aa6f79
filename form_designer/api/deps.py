"""Request-scoped access to the store and settings held on ``app.state``."""
from dataclasses import asdict

from fastapi import Request

from form_designer.api.schemas import DocumentOut, TextFieldOut
from form_designer.models import Document, TextField
from form_designer.settings import DesignerSettings
from form_designer.storage import FieldStore


def get_store(request: Request) -> FieldStore:
    return request.app.state.store


def get_settings(request: Request) -> DesignerSettings:
    return request.app.state.settings


def document_out(document: Document) -> DocumentOut:
    return DocumentOut(**asdict(document))


def field_out(field: TextField) -> TextFieldOut:
    return TextFieldOut(**asdict(field))
