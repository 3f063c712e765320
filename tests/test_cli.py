"""Tests for the command-line interface (remote client faked)."""

import pytest
from click.testing import CliRunner
from PIL import Image

from conftest import FakeRestorationClient

from timeprint import cli
from timeprint.ai.errors import QuotaError


@pytest.fixture
def photos(tmp_path):
    src = tmp_path / "album"
    src.mkdir()
    Image.new("RGB", (10, 8), (120, 90, 60)).save(src / "wedding.jpg", format="JPEG")
    Image.new("RGB", (10, 8), (60, 90, 120)).save(src / "beach.png", format="PNG")
    return src


@pytest.fixture
def fake_client(monkeypatch):
    fake = FakeRestorationClient()
    monkeypatch.setattr(cli, "GeminiRestorationClient", lambda **kwargs: fake)
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return fake


class TestRestoreCommand:
    """Tests for `timeprint restore`."""

    def test_restores_and_exports(self, photos, tmp_path, fake_client):
        out = tmp_path / "out"
        result = CliRunner().invoke(
            cli.main,
            ["restore", str(photos), "--batch", "-o", str(out), "--mode", "ultra", "--saturation", "250"],
        )

        assert result.exit_code == 0, result.output
        assert len(fake_client.calls) == 2
        assert all(c.mode.value == "ultra" for c in fake_client.calls)
        assert sorted(p.name for p in out.iterdir()) == [
            "restored-enhanced-beach.png.png",
            "restored-enhanced-wedding.jpg.png",
        ]

    def test_failed_photo_is_not_exported(self, photos, tmp_path, fake_client):
        fake_client.outcomes = [QuotaError("429")]
        out = tmp_path / "out"

        result = CliRunner().invoke(cli.main, ["restore", str(photos), "--batch", "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert "failed" in result.output
        assert len(list(out.iterdir())) == 1

    def test_directory_requires_batch(self, photos, fake_client):
        result = CliRunner().invoke(cli.main, ["restore", str(photos)])
        assert result.exit_code == 1
        assert fake_client.calls == []

    def test_missing_key(self, photos, tmp_path, monkeypatch):
        monkeypatch.delenv("API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        secrets = tmp_path / "secrets.json"
        secrets.write_text("{}")

        result = CliRunner().invoke(
            cli.main, ["restore", str(photos / "beach.png"), "--secrets", str(secrets)]
        )

        assert result.exit_code == 1


class TestCheckKeyCommand:
    """Tests for `timeprint check-key`."""

    def test_key_available(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        result = CliRunner().invoke(cli.main, ["check-key"])
        assert result.exit_code == 0
        assert "API key available" in result.output

    def test_key_missing(self, tmp_path, monkeypatch):
        monkeypatch.delenv("API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        secrets = tmp_path / "secrets.json"
        secrets.write_text("{}")

        result = CliRunner().invoke(cli.main, ["check-key", "--secrets", str(secrets)])

        assert result.exit_code == 1
        assert "No API key found" in result.output


class TestExportNaming:
    """Tests for export file names when photos share a name or stem."""

    def test_same_stem_different_extension(self, tmp_path, fake_client):
        """mum.jpg and mum.png both survive export."""
        album = tmp_path / "album"
        album.mkdir()
        Image.new("RGB", (10, 8), (10, 20, 30)).save(album / "mum.jpg", format="JPEG")
        Image.new("RGB", (10, 8), (30, 20, 10)).save(album / "mum.png", format="PNG")
        out = tmp_path / "out"

        result = CliRunner().invoke(cli.main, ["restore", str(album), "--batch", "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in out.iterdir()) == [
            "restored-enhanced-mum.jpg.png",
            "restored-enhanced-mum.png.png",
        ]

    def test_same_name_in_different_directories(self, tmp_path, fake_client):
        """Two a.jpg files from different folders get distinct outputs."""
        for folder in ("first", "second"):
            (tmp_path / folder).mkdir()
            Image.new("RGB", (10, 8), (90, 90, 90)).save(tmp_path / folder / "a.jpg", format="JPEG")
        out = tmp_path / "out"

        result = CliRunner().invoke(
            cli.main,
            ["restore", str(tmp_path / "first" / "a.jpg"), str(tmp_path / "second" / "a.jpg"), "-o", str(out)],
        )

        assert result.exit_code == 0, result.output
        assert len(fake_client.calls) == 2
        assert sorted(p.name for p in out.iterdir()) == [
            "restored-enhanced-a.jpg-2.png",
            "restored-enhanced-a.jpg.png",
        ]
