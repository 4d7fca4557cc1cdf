"""Receipt camera capture using OpenCV."""

from __future__ import annotations

import base64
import logging
from pathlib import Path

from .errors import CaptureError

logger = logging.getLogger(__name__)

GUIDE_HINT = "Align receipt within frame"
GUIDE_ASPECT = 3 / 4  # width / height of a receipt held upright

_KEY_SPACE = 32
_KEY_ESC = 27


def _import_cv2():
    try:
        import cv2
    except ImportError:
        raise ImportError(
            "opencv-python is required: pip install opencv-python"
        ) from None
    return cv2


class ReceiptCamera:
    """Exclusive handle on one video device.

    Use as a context manager so the device is released on every exit path::

        with ReceiptCamera(0) as cam:
            image = cam.capture()
    """

    def __init__(self, camera_index: int = 0, jpeg_quality: int = 92) -> None:
        self._camera_index = camera_index
        self._jpeg_quality = jpeg_quality
        self._cap = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> None:
        """Acquire the camera device.

        Raises:
            CaptureError: If the device is missing, busy or access was denied.
        """
        if self._cap is not None:
            return
        cv2 = _import_cv2()

        cap = cv2.VideoCapture(self._camera_index)
        if not cap.isOpened():
            cap.release()
            raise CaptureError(
                f"Unable to access camera {self._camera_index}. "
                "Please check the connection and permissions."
            )
        self._cap = cap
        logger.debug("Camera %d opened", self._camera_index)

    def close(self) -> None:
        """Release the device. Safe to call more than once."""
        if self._cap is None:
            return
        cap, self._cap = self._cap, None
        cap.release()
        logger.debug("Camera %d released", self._camera_index)

    def __enter__(self) -> ReceiptCamera:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def read_frame(self):
        """Return the current video frame as a BGR array."""
        if self._cap is None:
            raise CaptureError("Camera is not open")
        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise CaptureError(
                f"Could not read a frame from camera {self._camera_index}."
            )
        return frame

    def capture(self) -> str:
        """Freeze the current frame and return it as base64-encoded JPEG."""
        return encode_jpeg(self.read_frame(), self._jpeg_quality)

    def viewfinder(self, window: str = "receipt2sheet") -> str | None:
        """Show a live preview with the framing guide.

        SPACE captures the current frame, ESC or ``q`` cancels.

        Returns:
            The base64 JPEG, or None if the user cancelled.
        """
        cv2 = _import_cv2()
        try:
            while True:
                frame = self.read_frame()
                cv2.imshow(window, frame_with_guide(frame))
                key = cv2.waitKey(30) & 0xFF
                if key == _KEY_SPACE:
                    return encode_jpeg(frame, self._jpeg_quality)
                if key in (_KEY_ESC, ord("q")):
                    return None
        finally:
            cv2.destroyWindow(window)

    @staticmethod
    def list_cameras(max_check: int = 10) -> list[int]:
        """List available camera indices by probing."""
        cv2 = _import_cv2()

        available: list[int] = []
        for i in range(max_check):
            cap = cv2.VideoCapture(i)
            if cap.isOpened():
                available.append(i)
            cap.release()
        return available


def guide_rect(width: int, height: int, margin: float = 0.08) -> tuple[int, int, int, int]:
    """Largest 3:4 rectangle centred in the frame, inset by *margin*.

    Returns (x0, y0, x1, y1).
    """
    avail_w = width * (1 - 2 * margin)
    avail_h = height * (1 - 2 * margin)
    if avail_w / avail_h > GUIDE_ASPECT:
        rect_h = avail_h
        rect_w = rect_h * GUIDE_ASPECT
    else:
        rect_w = avail_w
        rect_h = rect_w / GUIDE_ASPECT
    x0 = int((width - rect_w) / 2)
    y0 = int((height - rect_h) / 2)
    return x0, y0, x0 + int(rect_w), y0 + int(rect_h)


def frame_with_guide(frame, dash: int = 16):
    """Return a copy of *frame* with a dashed receipt outline and hint text."""
    cv2 = _import_cv2()

    out = frame.copy()
    height, width = out.shape[:2]
    x0, y0, x1, y1 = guide_rect(width, height)
    color = (255, 255, 255)

    for x in range(x0, x1, dash * 2):
        end = min(x + dash, x1)
        cv2.line(out, (x, y0), (end, y0), color, 2)
        cv2.line(out, (x, y1), (end, y1), color, 2)
    for y in range(y0, y1, dash * 2):
        end = min(y + dash, y1)
        cv2.line(out, (x0, y), (x0, end), color, 2)
        cv2.line(out, (x1, y), (x1, end), color, 2)

    cv2.putText(
        out,
        GUIDE_HINT,
        (x0 + 10, y1 - 12),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.6,
        color,
        1,
        cv2.LINE_AA,
    )
    return out


def encode_jpeg(frame, quality: int = 92) -> str:
    cv2 = _import_cv2()

    ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise CaptureError("Could not encode the captured frame as JPEG.")
    return base64.b64encode(buf.tobytes()).decode("ascii")


def encode_image_file(path: str | Path, quality: int = 92) -> str:
    """Load an existing photo and return it as base64-encoded JPEG."""
    cv2 = _import_cv2()

    p = Path(path)
    if not p.exists():
        raise CaptureError(f"Image file not found: {p}")
    frame = cv2.imread(str(p))
    if frame is None:
        raise CaptureError(f"Could not decode image file: {p}")
    return encode_jpeg(frame, quality)
