class SignDeskError(Exception):
    """Base exception for SignDesk API errors"""
    def __init__(self, code: str, message: str, status_code: int = 400, field: str = None, details: dict = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.field = field
        self.details = details or {}
        super().__init__(self.message)

    @property
    def stage(self):
        return self.details.get("stage")


class ValidationError(SignDeskError):
    def __init__(self, message: str, field: str = None, details: dict = None):
        super().__init__("VALIDATION_ERROR", message, 400, field, details)


class NotFoundError(SignDeskError):
    def __init__(self, resource: str, resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message += f": {resource_id}"
        super().__init__("NOT_FOUND", message, 404, details={"resource": resource, "resource_id": resource_id})


class DegenerateGeometryError(SignDeskError):
    """Overlay or page dimensions that cannot produce a scale factor."""
    def __init__(self, reason: str, page: int = None):
        message = "Degenerate geometry"
        if page is not None:
            message += f" on page {page}"
        message += f": {reason}"
        super().__init__("DEGENERATE_GEOMETRY", message, 422, details={"stage": "geometry", "page": page})


class PageOutOfRangeError(SignDeskError):
    def __init__(self, page: int, page_count: int):
        message = f"Page {page} is out of range (document has {page_count} pages)"
        super().__init__(
            "PAGE_OUT_OF_RANGE",
            message,
            422,
            field="page",
            details={"stage": "geometry", "page": page, "page_count": page_count}
        )


class CorruptSourceDocumentError(SignDeskError):
    def __init__(self, reason: str = None):
        message = "Source document could not be parsed"
        if reason:
            message += f": {reason}"
        super().__init__("CORRUPT_SOURCE_DOCUMENT", message, 422, details={"stage": "parse"})


class SourceFetchFailedError(SignDeskError):
    def __init__(self, url: str, reason: str = None):
        message = f"Failed to fetch source document from {url}"
        if reason:
            message += f": {reason}"
        super().__init__("SOURCE_FETCH_FAILED", message, 502, details={"stage": "source_fetch", "url": url})


class FontFetchFailedError(SignDeskError):
    """Raised while loading font bytes; the resolver recovers from it."""
    def __init__(self, font_ref: str, location: str = None, reason: str = None):
        message = f"Failed to load font program for {font_ref}"
        if location:
            message += f" from {location}"
        if reason:
            message += f": {reason}"
        super().__init__(
            "FONT_FETCH_FAILED",
            message,
            502,
            details={"stage": "font", "font_ref": font_ref, "location": location}
        )


class PersistenceFailedError(SignDeskError):
    def __init__(self, key: str, reason: str = None):
        message = f"Failed to persist signed document {key}"
        if reason:
            message += f": {reason}"
        super().__init__("PERSISTENCE_FAILED", message, 502, details={"stage": "persist", "key": key})
