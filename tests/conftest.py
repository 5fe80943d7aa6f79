import fitz
import pytest
from fastapi.testclient import TestClient

from form_designer.api.app import create_app
from form_designer.settings import DesignerSettings
from form_designer.storage import FieldStore


def _pdf_bytes(width=612, height=792, pages=1):
    doc = fitz.open()
    for _ in range(pages):
        doc.new_page(width=width, height=height)
    data = doc.tobytes()
    doc.close()
    return data


def _png_bytes(width=40, height=30):
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, width, height), False)
    pix.clear_with(255)
    return pix.tobytes("png")


@pytest.fixture()
def store():
    s = FieldStore()
    yield s
    s.clear()


@pytest.fixture()
def fonts_dir(tmp_path):
    path = tmp_path / "fonts"
    path.mkdir()
    return path


@pytest.fixture()
def settings(fonts_dir):
    return DesignerSettings(fonts_dir=str(fonts_dir))


@pytest.fixture()
def client(store, settings):
    return TestClient(create_app(store=store, settings=settings))


@pytest.fixture()
def pdf_bytes():
    """A blank one-page US Letter PDF."""
    return _pdf_bytes()


@pytest.fixture()
def make_pdf():
    return _pdf_bytes


@pytest.fixture()
def png_bytes():
    """A 40x30 white PNG."""
    return _png_bytes()


@pytest.fixture()
def pdf_document(store, pdf_bytes):
    return store.create_document("form.pdf", "application/pdf", pdf_bytes, 612, 792)
