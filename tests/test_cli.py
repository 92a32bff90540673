import os

import numpy as np
from PIL import Image

from cellmorph import cli


def _write_image(path, seed):
    rng = np.random.default_rng(seed)
    Image.fromarray(rng.integers(0, 256, size=(64, 48, 3), dtype=np.uint8)).save(path)


def test_cli_writes_gif(tmp_path):
    src = str(tmp_path / "a.png")
    tgt = str(tmp_path / "b.png")
    _write_image(src, 0)
    _write_image(tgt, 1)
    out = str(tmp_path / "out")

    code = cli.main(["--source", src, "--target", tgt, "--cell-size", "16", "--duration", "500", "--out", out])
    assert code == 0
    assert os.path.exists(os.path.join(out, "cellmorph.gif"))
    assert os.path.exists(os.path.join(out, "final.png"))


def test_cli_reports_degenerate_grid(tmp_path):
    src = str(tmp_path / "a.png")
    _write_image(src, 0)
    code = cli.main(["--source", src, "--target", src, "--cell-size", "128", "--out", str(tmp_path / "out")])
    assert code == 1


def test_cli_rejects_bad_settings(tmp_path):
    src = str(tmp_path / "a.png")
    _write_image(src, 0)
    code = cli.main(["--source", src, "--target", src, "--gradient-weight", "2", "--out", str(tmp_path / "out")])
    assert code == 2
