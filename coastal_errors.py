# coastal_errors.py
# Error kinds raised while comparing two coastline datasets.
# Every one of them is fatal to the comparison in progress.

from typing import Dict


class CoastlineError(Exception):
    """Base class for all comparison failures."""

    kind = "CoastlineError"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details: Dict = details

    def to_dict(self) -> Dict:
        """Payload suitable for showing the failure to a user."""
        out = {"error": self.kind, "message": self.message}
        out.update(self.details)
        return out


class NoPolygonGeometry(CoastlineError, ValueError):
    kind = "NoPolygonGeometry"


class UnsupportedGeometryType(CoastlineError, ValueError):
    kind = "UnsupportedGeometryType"


class InvalidPolygonInput(CoastlineError, ValueError):
    kind = "InvalidPolygonInput"


class GeometryTooComplex(CoastlineError, ValueError):
    kind = "GeometryTooComplex"


class DivisionByZeroArea(CoastlineError, ValueError):
    kind = "DivisionByZeroArea"


class InvalidReferenceData(CoastlineError, LookupError):
    """A dataset id did not resolve in the store."""

    kind = "InvalidReferenceData"
