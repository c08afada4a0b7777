"""
Marker Detection Module.

Separator sheets carry a QR code whose payload starts with the mandate's
marker prefix, optionally followed by routing metadata:

    DOCSEP
    DOCSEP|doctype=invoice|cost_center=4711

Any other QR code on a page (payment slips, shipping labels) is content,
not a marker.

Author: Document Automation Team
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from config import get_config
from mandate_ocr.utils.logger import get_logger
from mandate_ocr.utils.exceptions import MarkerDecodeError

# Initialize module logger
logger = get_logger(__name__)

PAYLOAD_SEPARATOR = "|"


class MarkerPolicy(str, enum.Enum):
    """What happens to a marker page once it has closed a document."""

    DROP = "drop"  # marker page is discarded, metadata moves to the next document
    KEEP = "keep"  # marker page becomes the first page of the next document


@dataclass(frozen=True)
class Marker:
    """
    A decoded separator found on a page.

    Attributes:
        page_index: Page the marker was found on
        payload: Raw decoded QR payload
        metadata: Routing key/value pairs carried by the payload
    """
    page_index: int
    payload: str
    metadata: Dict[str, str] = field(default_factory=dict, compare=False)


def parse_marker_payload(payload: str, prefix: str) -> Optional[Dict[str, str]]:
    """
    Parse a QR payload as a marker.

    Args:
        payload: Decoded QR text.
        prefix: Marker prefix configured for the mandate.

    Returns:
        Routing metadata (possibly empty) if the payload is a marker,
        None if it is some other QR code.

    Example:
        >>> parse_marker_payload("DOCSEP|doctype=invoice", "DOCSEP")
        {'doctype': 'invoice'}
        >>> parse_marker_payload("SPC\\n0200\\n1", "DOCSEP") is None
        True
    """
    text = payload.strip()
    head, _, rest = text.partition(PAYLOAD_SEPARATOR)

    if head.strip().upper() != prefix.upper():
        return None

    metadata = {}
    for item in rest.split(PAYLOAD_SEPARATOR):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            metadata[key.strip().lower()] = value.strip()
        elif item.strip():
            logger.debug(f"Ignoring malformed marker field: {item!r}")

    return metadata


class MarkerDecoder:
    """
    QR decoding capability backed by OpenCV.

    Attributes:
        downscale_width: Images wider than this are shrunk before decoding

    Example:
        >>> decoder = MarkerDecoder()
        >>> decoder.decode(page.image)
        ('DOCSEP|doctype=invoice',)
    """

    def __init__(self, downscale_width: Optional[int] = None) -> None:
        self.downscale_width = downscale_width or get_config(
            "segmentation.decode_downscale_width", 1600
        )

    def _prepare(self, image: Image.Image) -> np.ndarray:
        gray = image.convert('L')

        if self.downscale_width and gray.width > self.downscale_width:
            ratio = self.downscale_width / gray.width
            gray = gray.resize((self.downscale_width, max(1, int(gray.height * ratio))))

        return np.array(gray)

    def decode(self, image: Image.Image, page_index: int = -1) -> Tuple[str, ...]:
        """
        Decode every QR code on an image.

        Args:
            image: Page raster.
            page_index: Page index used in error reports.

        Returns:
            Tuple of decoded payloads, empty when no QR code is readable.

        Raises:
            MarkerDecodeError: If the image cannot be scanned at all.
        """
        try:
            array = self._prepare(image)
            # QRCodeDetector keeps internal state, one instance per call
            detector = cv2.QRCodeDetector()
            found, payloads, _, _ = detector.detectAndDecodeMulti(array)
        except Exception as e:
            raise MarkerDecodeError(page_index, str(e))

        if not found:
            return ()

        return tuple(payload for payload in payloads if payload)


class MarkerDetector:
    """Turns decoded QR payloads of a page into at most one Marker."""

    def __init__(self, decoder: Optional[MarkerDecoder] = None) -> None:
        self.decoder = decoder or MarkerDecoder()

    def detect(self, page, prefix: str) -> Optional[Marker]:
        """
        Look for a marker on a page.

        Args:
            page: Page to scan.
            prefix: Marker prefix of the mandate.

        Returns:
            The first marker payload on the page, or None.

        Raises:
            MarkerDecodeError: If decoding the page image failed.
        """
        for payload in self.decoder.decode(page.image, page.index):
            metadata = parse_marker_payload(payload, prefix)
            if metadata is not None:
                return Marker(page_index=page.index, payload=payload, metadata=metadata)

            logger.debug(f"Page {page.number}: QR code is not a marker ({payload[:20]!r})")

        return None
