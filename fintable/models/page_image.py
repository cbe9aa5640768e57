from dataclasses import dataclass


@dataclass(frozen=True)
class PageImage:
    """A rasterized PDF page ready to be sent to the model.

    Attributes:
        page_number: 1-indexed page number
        data: encoded image bytes
        mime_type: MIME type of ``data``
        width: rendered width in pixels
        height: rendered height in pixels
    """

    page_number: int
    data: bytes
    mime_type: str = "image/jpeg"
    width: int = 0
    height: int = 0
