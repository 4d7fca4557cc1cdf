"""Tests for the receipt2sheet command line."""

import json

import pytest

from receipt2sheet import cli
from receipt2sheet.models import ReceiptItem, ReceiptRecord
from receipt2sheet.vision import ExtractionBackend

WEBHOOK = "https://script.google.com/macros/s/AKfy123/exec"


class FakeBackend(ExtractionBackend):
    async def analyze(self, image_b64):
        return ReceiptRecord(
            merchant_name="Cafe X",
            total_amount=12.5,
            category="Dining",
            currency="$",
            items=[ReceiptItem(name="Coffee", price=4.5)],
        )


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "receipt2sheet.toml"
    settings_path = tmp_path / "settings.json"
    path.write_text(f'[settings]\npath = "{settings_path.as_posix()}"\n')
    return path, settings_path


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 1
    assert "receipt2sheet" in capsys.readouterr().out


def test_setup_guide(capsys):
    cli.main(["setup-guide"])
    out = capsys.readouterr().out
    assert "function doPost(e)" in out
    assert "Deploy > New Deployment" in out


def test_settings_save_and_show(config_file, capsys):
    path, settings_path = config_file

    cli.main(["-c", str(path), "settings", "--webhook", WEBHOOK, "--sheet", "https://docs.google.com/spreadsheets/d/x"])
    assert "Settings saved!" in capsys.readouterr().out
    assert json.loads(settings_path.read_text())["webhookUrl"] == WEBHOOK

    cli.main(["-c", str(path), "settings"])
    out = capsys.readouterr().out
    assert WEBHOOK in out
    assert "Sync active   : yes" in out


def test_settings_rejects_sheet_url_as_webhook(config_file, capsys):
    path, settings_path = config_file

    with pytest.raises(SystemExit) as exc:
        cli.main(["-c", str(path), "settings", "--webhook", "https://docs.google.com/spreadsheets/d/x"])

    assert exc.value.code == 1
    assert "Spreadsheet URL" in capsys.readouterr().err
    assert not settings_path.exists()


def test_test_connection_without_webhook(config_file, capsys):
    path, _ = config_file
    with pytest.raises(SystemExit):
        cli.main(["-c", str(path), "test-connection"])
    assert "Invalid Webhook URL" in capsys.readouterr().err


def test_scan_image_json_no_export(config_file, monkeypatch, tmp_path, capsys):
    path, _ = config_file
    monkeypatch.setattr(cli, "create_backend", lambda config: FakeBackend())
    monkeypatch.setattr(cli, "encode_image_file", lambda p, q: "aGVsbG8=")

    cli.main(["-c", str(path), "scan", "--image", str(tmp_path / "r.jpg"), "--json", "--no-export"])

    out = capsys.readouterr().out
    data = json.loads(out[out.index("{"):])
    assert data["merchantName"] == "Cafe X"
    assert data["items"] == [{"name": "Coffee", "quantity": 1, "price": 4.5}]


def test_scan_review_end_of_input_discards(config_file, monkeypatch, tmp_path, capsys):
    path, _ = config_file
    monkeypatch.setattr(cli, "create_backend", lambda config: FakeBackend())
    monkeypatch.setattr(cli, "encode_image_file", lambda p, q: "aGVsbG8=")
    answers = iter(["m", "Cafe Y", "s"])

    def fake_input(prompt=""):
        try:
            return next(answers)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr("builtins.input", fake_input)

    cli.main(["-c", str(path), "scan", "--image", str(tmp_path / "r.jpg")])

    out = capsys.readouterr().out
    assert "Cafe Y" in out
    assert out.rstrip().endswith("Discarded.")
