"""Capture → scan → review → export state machine."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable

from .camera import ReceiptCamera
from .errors import (
    CaptureError,
    ConfigurationError,
    ExportError,
    ExtractionError,
    InvalidTransition,
    Receipt2SheetError,
)
from .export import ExportResult, ExportStatus, WebhookExporter
from .models import ReceiptRecord
from .review import ReceiptEditor
from .settings import (
    Settings,
    SettingsStorage,
    load_settings,
    require_webhook,
    save_settings,
)
from .vision import ExtractionBackend

logger = logging.getLogger(__name__)

SCAN_FAILED = "Failed to analyze receipt. Please try again with a clearer picture."
SYNC_OK = "Sync successful! Your expense has been logged."
SYNC_UNCONFIRMED = (
    "Sync sent. The webhook did not confirm the row; if it didn't appear, "
    "ensure you deployed the script as a Web App for 'Anyone'."
)
TEST_SENT = "Test sent! If your sheet is empty, check your Deployment settings."


class AppState(enum.Enum):
    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    SCANNING = "SCANNING"
    REVIEWING = "REVIEWING"
    EXPORTING = "EXPORTING"
    SUCCESS = "SUCCESS"


@dataclass
class Transition:
    """Result of a controller operation: the state reached plus any banner."""

    state: AppState
    error: Receipt2SheetError | None = None
    message: str | None = None


class ScanController:
    """Owns the application state and wires the components together.

    Every long-running step is awaited one at a time. If the state was left
    while a request was in flight (``reset()`` from another task), the late
    result is dropped; the request itself is not aborted.
    """

    def __init__(
        self,
        storage: SettingsStorage,
        backend: ExtractionBackend,
        *,
        camera_factory: Callable[[], ReceiptCamera] | None = None,
        exporter_factory: Callable[[str], WebhookExporter] | None = None,
    ) -> None:
        self._storage = storage
        self._backend = backend
        self._camera_factory = camera_factory or ReceiptCamera
        self._exporter_factory = exporter_factory or WebhookExporter

        self._state = AppState.IDLE
        self._generation = 0
        self._camera: ReceiptCamera | None = None
        self._editor: ReceiptEditor | None = None
        self._exported: ReceiptRecord | None = None
        self.last_export: ExportResult | None = None
        self.error: Receipt2SheetError | None = None
        self.message: str | None = None

    # ---------- read-only view ----------
    @property
    def state(self) -> AppState:
        return self._state

    @property
    def settings(self) -> Settings:
        return load_settings(self._storage)

    @property
    def camera(self) -> ReceiptCamera | None:
        return self._camera

    @property
    def editor(self) -> ReceiptEditor | None:
        return self._editor

    @property
    def record(self) -> ReceiptRecord | None:
        """The record under review, or the one just exported."""
        if self._state is AppState.SUCCESS:
            return self._exported
        return self._editor.draft if self._editor else None

    # ---------- helpers ----------
    def _require(self, operation: str, *states: AppState) -> None:
        if self._state not in states:
            raise InvalidTransition(operation, self._state)

    def _goto(
        self,
        state: AppState,
        error: Receipt2SheetError | None = None,
        message: str | None = None,
    ) -> Transition:
        if state is not self._state:
            logger.debug("%s -> %s", self._state.value, state.value)
            self._generation += 1
        self._state = state
        self.error = error
        self.message = message
        if error is not None:
            logger.warning("%s: %s", type(error).__name__, error)
        return Transition(state, error, message)

    def _stale(self, generation: int) -> bool:
        return generation != self._generation

    def _release_camera(self) -> None:
        camera, self._camera = self._camera, None
        if camera is not None:
            camera.close()

    def dismiss(self) -> Transition:
        """Clear the current banner without changing state."""
        self.error = None
        self.message = None
        return Transition(self._state)

    # ---------- settings ----------
    def save_settings(self, webhook: str, sheet: str) -> Transition:
        self._require("save_settings", AppState.IDLE)
        try:
            save_settings(self._storage, webhook, sheet)
        except ConfigurationError as e:
            return self._goto(AppState.IDLE, error=e)
        return self._goto(AppState.IDLE, message="Settings saved!")

    async def test_connection(self) -> Transition:
        self._require("test_connection", AppState.IDLE)
        try:
            webhook = require_webhook(self.settings)
        except ConfigurationError as e:
            return self._goto(AppState.IDLE, error=e)

        try:
            result = await self._exporter_factory(webhook).test_connection()
        except ExportError as e:
            return self._goto(AppState.IDLE, error=e)
        if result.status is ExportStatus.FAILED:
            return self._goto(AppState.IDLE, error=ExportError(result.detail))
        return self._goto(AppState.IDLE, message=TEST_SENT)

    # ---------- capture ----------
    def start_capture(self) -> Transition:
        """Open the camera. On failure only cancel_capture() is useful."""
        self._require("start_capture", AppState.IDLE)
        self._goto(AppState.CAPTURING)
        camera = self._camera_factory()
        try:
            camera.open()
        except CaptureError as e:
            camera.close()
            return self._goto(AppState.CAPTURING, error=e)
        self._camera = camera
        return Transition(self._state)

    def cancel_capture(self) -> Transition:
        self._require("cancel_capture", AppState.CAPTURING)
        self._release_camera()
        return self._goto(AppState.IDLE)

    async def take_photo(self) -> Transition:
        """Capture one frame, release the camera and scan it."""
        self._require("take_photo", AppState.CAPTURING)
        if self._camera is None:
            return self._goto(
                AppState.CAPTURING, error=CaptureError("Camera is not available.")
            )
        try:
            image = self._camera.capture()
        except CaptureError as e:
            self._release_camera()
            return self._goto(AppState.IDLE, error=e)
        return await self.submit_image(image)

    # ---------- scan ----------
    async def submit_image(self, image_b64: str) -> Transition:
        """Send a captured (or loaded) image to the extraction backend."""
        self._require("submit_image", AppState.IDLE, AppState.CAPTURING)
        self._release_camera()
        self._goto(AppState.SCANNING)
        generation = self._generation

        try:
            record = await self._backend.analyze(image_b64)
        except ConfigurationError as e:
            if self._stale(generation):
                return Transition(self._state)
            return self._goto(AppState.IDLE, error=e)
        except ExtractionError as e:
            if self._stale(generation):
                return Transition(self._state)
            error = ExtractionError(SCAN_FAILED)
            error.__cause__ = e
            logger.info("Extraction failed: %s", e)
            return self._goto(AppState.IDLE, error=error)
        except Exception as e:
            if self._stale(generation):
                return Transition(self._state)
            logger.exception("Extraction backend raised unexpectedly")
            error = ExtractionError(SCAN_FAILED)
            error.__cause__ = e
            return self._goto(AppState.IDLE, error=error)

        if self._stale(generation):
            logger.info("Dropping extraction result; state changed meanwhile")
            return Transition(self._state)

        self._editor = ReceiptEditor(record)
        return self._goto(AppState.REVIEWING)

    # ---------- review ----------
    def cancel_review(self) -> Transition:
        self._require("cancel_review", AppState.REVIEWING)
        self._editor = None
        return self._goto(AppState.IDLE)

    async def confirm(self, record: ReceiptRecord | None = None) -> Transition:
        """Export the reviewed record.

        A bad webhook keeps the user in REVIEWING without sending anything;
        an export failure also returns there with the edits preserved.
        """
        self._require("confirm", AppState.REVIEWING)
        if record is not None:
            self._editor = ReceiptEditor(record)
        to_send = self._editor.result()

        try:
            webhook = require_webhook(self.settings)
        except ConfigurationError as e:
            return self._goto(AppState.REVIEWING, error=e)

        self._goto(AppState.EXPORTING)
        generation = self._generation
        try:
            result = await self._exporter_factory(webhook).export(to_send)
        except ExportError as e:
            if self._stale(generation):
                return Transition(self._state)
            return self._goto(AppState.REVIEWING, error=e)

        if self._stale(generation):
            return Transition(self._state)

        self.last_export = result
        if result.status is ExportStatus.FAILED:
            return self._goto(
                AppState.REVIEWING,
                error=ExportError(f"Sync failed: {result.detail}"),
            )

        self._exported = to_send
        message = SYNC_OK if result.status is ExportStatus.ACK else SYNC_UNCONFIRMED
        return self._goto(AppState.SUCCESS, message=message)

    # ---------- success ----------
    def reset(self) -> Transition:
        """Back to IDLE from anywhere, dropping all in-memory receipt state."""
        self._release_camera()
        self._editor = None
        self._exported = None
        self.last_export = None
        return self._goto(AppState.IDLE)
