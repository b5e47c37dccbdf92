"""Tests for the typer CLI."""

from pathlib import Path

import pytest
from PIL import Image
from typer.testing import CliRunner

from code_canvas.cli import app

runner = CliRunner()

pytestmark = pytest.mark.usefixtures("restore_root_logger")


class TestRenderCommand:
    def test_writes_png(self, tmp_path: Path) -> None:
        script = tmp_path / "drawing.py"
        script.write_text(
            "ctx.rect(0, 0, ctx.width, ctx.height, fill='white').layer()"
            ".circle(64, 64, 30, fill='red')\n"
        )
        output = tmp_path / "out" / "drawing.png"

        result = runner.invoke(app, ["render", str(script), "--size", "128", "-o", str(output)])

        assert result.exit_code == 0, result.output
        with Image.open(output) as img:
            assert img.size == (128, 128)
            assert img.getpixel((64, 64)) == (255, 0, 0, 255)

    def test_reports_code_errors(self, tmp_path: Path) -> None:
        script = tmp_path / "broken.py"
        script.write_text("ctx.circle(\n")
        output = tmp_path / "broken.png"

        result = runner.invoke(app, ["render", str(script), "-o", str(output)])

        assert result.exit_code == 1
        assert "Execution failed" in result.output
        assert not output.exists()


class TestDocsCommand:
    def test_prints_documentation(self) -> None:
        result = runner.invoke(app, ["docs"])
        assert result.exit_code == 0
        assert "ctx.circle(" in result.output
