"""Receipt photo → AI extraction → spreadsheet webhook."""

from .camera import ReceiptCamera, encode_image_file, frame_with_guide
from .config import (
    AppConfig,
    CameraConfig,
    ExportConfig,
    SettingsConfig,
    VisionConfig,
    load_config,
)
from .controller import AppState, ScanController, Transition
from .errors import (
    CaptureError,
    ConfigurationError,
    ExportError,
    ExtractionError,
    InvalidTransition,
    Receipt2SheetError,
)
from .export import ExportResult, ExportStatus, WebhookExporter
from .models import CATEGORIES, ReceiptItem, ReceiptRecord, display_category
from .review import ReceiptEditor
from .settings import (
    JsonFileStorage,
    MemoryStorage,
    Settings,
    SettingsStorage,
    load_settings,
    save_settings,
)
from .vision import ExtractionBackend, create_backend

__all__ = [
    "ReceiptCamera",
    "encode_image_file",
    "frame_with_guide",
    "ExtractionBackend",
    "create_backend",
    "WebhookExporter",
    "ExportResult",
    "ExportStatus",
    "ReceiptEditor",
    "ScanController",
    "AppState",
    "Transition",
    "ReceiptItem",
    "ReceiptRecord",
    "CATEGORIES",
    "display_category",
    "Settings",
    "SettingsStorage",
    "JsonFileStorage",
    "MemoryStorage",
    "load_settings",
    "save_settings",
    "Receipt2SheetError",
    "ConfigurationError",
    "CaptureError",
    "ExtractionError",
    "ExportError",
    "InvalidTransition",
    "AppConfig",
    "CameraConfig",
    "VisionConfig",
    "ExportConfig",
    "SettingsConfig",
    "load_config",
]
