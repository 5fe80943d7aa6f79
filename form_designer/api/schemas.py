from typing import Literal, Optional

from pydantic import BaseModel, Field

FontFamily = Literal["Arial", "Allura", "Dancing Script"]


class DocumentOut(BaseModel):
    id: str
    original_name: str
    mime_type: str
    size: int
    width: float
    height: float


class TextFieldOut(BaseModel):
    id: str
    document_id: str
    name: str
    x: float
    y: float
    width: float
    height: float
    required: bool
    font_family: str


class TextFieldCreate(BaseModel):
    document_id: str
    name: str = Field(..., min_length=1)
    x: float = Field(..., ge=0, allow_inf_nan=False)
    y: float = Field(..., ge=0, allow_inf_nan=False)
    width: float = Field(..., ge=50, allow_inf_nan=False)
    height: float = Field(..., ge=20, allow_inf_nan=False)
    required: bool = False
    font_family: FontFamily = "Arial"


class TextFieldUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    x: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    y: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    width: Optional[float] = Field(None, ge=50, allow_inf_nan=False)
    height: Optional[float] = Field(None, ge=20, allow_inf_nan=False)
    required: Optional[bool] = None
    font_family: Optional[FontFamily] = None
