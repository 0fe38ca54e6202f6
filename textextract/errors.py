"""Exception hierarchy for the extraction pipeline."""


class TextExtractError(Exception):
    """Base class for all errors raised by the service."""


class InvalidImageError(TextExtractError):
    """The uploaded payload is missing, undecodable, or not an image."""


class ImageTooLargeError(TextExtractError):
    """The image is still over the provider payload ceiling after compression."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"Image is {size} bytes after compression, limit is {limit} bytes. "
            "Please upload a smaller image."
        )
        self.size = size
        self.limit = limit


class OCRProviderError(TextExtractError):
    """A single OCR provider failed to return a usable result."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class OCRFailedError(TextExtractError):
    """Every OCR provider failed for this image."""

    USER_MESSAGE = (
        "Could not extract text from this image. "
        "Please try again with a different image."
    )

    def __init__(self, errors: list[OCRProviderError]) -> None:
        super().__init__(self.USER_MESSAGE)
        self.errors = errors
