"""
Exception hierarchy for the conversion pipeline.

Each stage raises its own subclass of ConversionError. The FastAPI app maps
them to a JSON body ``{"success": false, "message": ...}`` using the
``status_code`` carried by the exception.
"""


class ConversionError(Exception):
    """Base exception for conversion pipeline errors."""

    status_code = 500
    message_prefix = "Error en la conversión: "

    def __init__(self, message: str = "Error interno durante la conversión"):
        self.message = message
        super().__init__(message)

    @property
    def public_message(self) -> str:
        """Message returned to the caller in the error response."""
        return f"{self.message_prefix}{self.message}"


class ValidationError(ConversionError):
    """Raised when the upload has a bad extension, is missing or is too large."""

    status_code = 400
    message_prefix = ""


class ExtractionError(ConversionError):
    """Raised when the Word document cannot be read or yields no content."""
    pass


class RenderError(ConversionError):
    """Raised when Chromium cannot be launched, times out or produces no PDF."""
    pass


class DeliveryError(ConversionError):
    """Raised when streaming the PDF back to the caller fails."""
    pass
