"""Tests for the command-line entry point."""

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

import main as cli


def _write_image(path: Path) -> Path:
    rng = np.random.default_rng(3)
    Image.fromarray(rng.integers(0, 256, size=(48, 48, 3), dtype=np.uint8)).save(path)
    return path


def test_cli_writes_output_and_prints_verdict(tmp_path: Path, capsys):
    src = _write_image(tmp_path / "in.png")
    out = tmp_path / "out.png"
    report = tmp_path / "report.json"

    code = cli.main(["--in", str(src), "--out", str(out), "--bs", "4", "--report", str(report)])

    assert code == 0
    assert out.exists()
    assert report.exists()
    printed = capsys.readouterr().out
    assert "Number of forged blocks detected: 0" in printed
    assert "the image is NOT forged!" in printed


def test_cli_requires_input_and_output(tmp_path: Path):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--in", str(tmp_path / "x.png")])
    assert exc.value.code == 2


def test_cli_rejects_small_block_size(tmp_path: Path):
    src = _write_image(tmp_path / "in.png")
    with pytest.raises(SystemExit) as exc:
        cli.main(["--in", str(src), "--out", str(tmp_path / "o.png"), "--bs", "1"])
    assert exc.value.code == 2


def test_cli_reports_unreadable_input(tmp_path: Path, capsys):
    out = tmp_path / "o.png"
    code = cli.main(["--in", str(tmp_path / "missing.jpg"), "--out", str(out)])
    assert code == 1
    assert not out.exists()
    assert "Error" in capsys.readouterr().err


def test_cli_extensionless_output_is_png(tmp_path: Path):
    src = _write_image(tmp_path / "in.png")
    out = tmp_path / "result"
    assert cli.main(["--in", str(src), "--out", str(out)]) == 0
    assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_cli_unwritable_output_exits_1(tmp_path: Path, capsys):
    src = _write_image(tmp_path / "in.png")
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")

    code = cli.main(["--in", str(src), "--out", str(blocker / "o.png")])

    assert code == 1
    assert "Error" in capsys.readouterr().err


@pytest.mark.parametrize(
    "content",
    ["- 1\n- 2\n", "detector: [unclosed\n", "detector:\n  block_size: \"4\"\n"],
)
def test_cli_bad_config_exits_2(tmp_path: Path, content: str):
    src = _write_image(tmp_path / "in.png")
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text(content, encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        cli.main(["--in", str(src), "--out", str(tmp_path / "o.png"), "--config", str(cfg)])
    assert exc.value.code == 2
