"""CLI entry point for receipt2sheet."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from .camera import ReceiptCamera, encode_image_file
from .config import AppConfig, load_config
from .controller import AppState, ScanController, Transition
from .errors import CaptureError
from .export import APPS_SCRIPT_SOURCE, WebhookExporter
from .models import CATEGORIES
from .settings import JsonFileStorage, load_settings
from .vision import create_backend

SETUP_STEPS = """\
1. Open Apps Script
   Inside your Google Sheet, go to Extensions > Apps Script.

2. Paste this code

{code}
3. Crucial: deploy as Web App
   - Click Deploy > New Deployment
   - Select Web App as the type
   - Set 'Who has access' to Anyone
   - Click Deploy, copy the Web App URL (NOT the editor URL)

4. Save it:  receipt2sheet settings --webhook <Web App URL> --sheet <Sheet URL>
"""


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="receipt2sheet",
        description="Photograph a receipt, extract it with AI and log it to a spreadsheet",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="path to the configuration file (TOML)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("cameras", help="list available cameras")
    sub.add_parser("setup-guide", help="show how to deploy the spreadsheet webhook")
    sub.add_parser("test-connection", help="send a test row to the webhook")

    settings_parser = sub.add_parser("settings", help="show or save the webhook and sheet URLs")
    settings_parser.add_argument("--webhook", type=str, default=None, help="Apps Script Web App URL")
    settings_parser.add_argument("--sheet", type=str, default=None, help="Google Sheets URL")

    scan_parser = sub.add_parser("scan", help="capture → extract → review → export")
    scan_parser.add_argument("--image", type=str, default=None, help="use an existing photo")
    scan_parser.add_argument("--json", action="store_true", help="print the extracted record as JSON")
    scan_parser.add_argument("--yes", "-y", action="store_true", help="export without interactive review")
    scan_parser.add_argument("--no-export", action="store_true", help="stop after extraction")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config(args.config)

    match args.command:
        case "cameras":
            _cmd_cameras()
        case "setup-guide":
            print(SETUP_STEPS.format(code=APPS_SCRIPT_SOURCE))
        case "settings":
            _cmd_settings(config, args)
        case "test-connection":
            asyncio.run(_cmd_test_connection(config))
        case "scan":
            asyncio.run(_cmd_scan(config, args))


def build_controller(config: AppConfig) -> ScanController:
    storage = JsonFileStorage(config.settings.path)

    def exporter_factory(webhook: str) -> WebhookExporter:
        return WebhookExporter(
            webhook,
            success_delay=config.export.success_delay,
            timeout=config.export.timeout,
        )

    return ScanController(
        storage,
        create_backend(config),
        camera_factory=lambda: ReceiptCamera(
            config.camera.index, jpeg_quality=config.camera.jpeg_quality
        ),
        exporter_factory=exporter_factory,
    )


def _report(t: Transition) -> bool:
    """Print the banner of a transition. Returns False on error."""
    if t.error is not None:
        print(f"Error: {t.error}", file=sys.stderr)
        return False
    if t.message:
        print(t.message)
    return True


def _cmd_cameras() -> None:
    cameras = ReceiptCamera.list_cameras()
    if not cameras:
        print("No cameras found.")
        return
    print(f"Available cameras: {len(cameras)}")
    for idx in cameras:
        print(f"  camera {idx}")


def _cmd_settings(config: AppConfig, args) -> None:
    storage = JsonFileStorage(config.settings.path)
    current = load_settings(storage)

    if args.webhook is None and args.sheet is None:
        print(f"Settings file : {storage.path}")
        print(f"Webhook URL   : {current.webhook_url or '(not set)'}")
        print(f"Sheet URL     : {current.sheet_url or '(not set)'}")
        print(f"Sync active   : {'yes' if current.is_configured else 'no'}")
        return

    controller = build_controller(config)
    webhook = args.webhook if args.webhook is not None else current.webhook_url
    sheet = args.sheet if args.sheet is not None else current.sheet_url
    if not _report(controller.save_settings(webhook, sheet)):
        sys.exit(1)


async def _cmd_test_connection(config: AppConfig) -> None:
    controller = build_controller(config)
    print("Sending test row...")
    if not _report(await controller.test_connection()):
        sys.exit(1)


async def _cmd_scan(config: AppConfig, args) -> None:
    controller = build_controller(config)

    if args.image:
        try:
            image = encode_image_file(args.image, config.camera.jpeg_quality)
        except CaptureError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print("🔍 Analyzing receipt...")
        t = await controller.submit_image(image)
    else:
        t = controller.start_capture()
        if not _report(t):
            controller.cancel_capture()
            sys.exit(1)
        print("📷 SPACE to capture, ESC to cancel")
        try:
            image = controller.camera.viewfinder()
        except CaptureError as e:
            controller.reset()
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if image is None:
            controller.cancel_capture()
            print("Cancelled.")
            return
        print("🔍 Analyzing receipt...")
        t = await controller.submit_image(image)

    if not _report(t):
        sys.exit(1)

    if args.json:
        print(json.dumps(controller.record.to_dict(), ensure_ascii=False, indent=2))
    else:
        print()
        print(controller.editor.summary())

    if args.no_export:
        controller.cancel_review()
        return

    if args.yes:
        t = await _export(controller)
        if not _report(t):
            sys.exit(1)
    else:
        await _review_loop(controller)

    if controller.state is AppState.SUCCESS:
        sheet = controller.settings.sheet_url
        if sheet:
            print(f"View sheet: {sheet}")


async def _export(controller: ScanController) -> Transition:
    print("☁  Exporting to your sheet...")
    return await controller.confirm()


async def _review_loop(controller: ScanController) -> None:
    while controller.state is AppState.REVIEWING:
        try:
            await _review_step(controller)
        except EOFError:
            # Ctrl-D behaves like [q]uit
            print()
            controller.cancel_review()
            print("Discarded.")


async def _review_step(controller: ScanController) -> None:
    editor = controller.editor
    choice = input(
        "\n[e]xport  [m]erchant  [c]ategory  [i]tem  [s]how  [q]uit > "
    ).strip().lower()

    match choice:
        case "e":
            _report(await _export(controller))
        case "m":
            editor.set_merchant(input("Merchant name: ").strip())
        case "c":
            print("Categories: " + ", ".join(CATEGORIES))
            try:
                editor.set_category(input("Category: ").strip())
            except ValueError as e:
                print(e, file=sys.stderr)
        case "i":
            _edit_item(controller)
        case "s":
            print(editor.summary())
        case "q":
            controller.cancel_review()
            print("Discarded.")
        case _:
            print("Unknown choice.")


def _edit_item(controller: ScanController) -> None:
    editor = controller.editor
    try:
        index = int(input("Item number: ")) - 1
        if not 0 <= index < len(editor.draft.items):
            raise IndexError
    except (ValueError, IndexError):
        print("No such item.", file=sys.stderr)
        return

    name = input("Name (blank to keep): ").strip() or None
    raw_price = input("Price (blank to keep): ").strip()
    try:
        price = float(raw_price) if raw_price else None
        editor.update_item(index, name=name, price=price)
    except ValueError as e:
        print(f"Invalid price: {e}", file=sys.stderr)


if __name__ == "__main__":
    main()
