"""Error kinds raised by the designer core."""


class DesignerError(Exception):
    """Base class for every failure reported by the designer."""


class ValidationError(DesignerError):
    """Rejected mutation: bad geometry, unknown font, bad upload."""


class NotFoundError(DesignerError):
    """Unknown document or field id."""


class RenderFailure(DesignerError):
    """Preview rasterization or font embedding failed."""


class ExportFailure(DesignerError):
    """The fillable PDF could not be produced."""
