import numpy as np
import pytest
from PIL import Image

from cellmorph.core import pipeline
from cellmorph.core.errors import DegenerateGridError
from cellmorph.core.rearrange import is_bijection


def _random_image(h, w, seed):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(h, w, 3), dtype=np.uint8)


def test_run_512_end_to_end():
    settings = pipeline.Settings(cell_size=32, gradient_weight=0.7, target_duration_ms=2000, nominal_fps=30)
    result = pipeline.run(_random_image(512, 512, 0), _random_image(512, 512, 1), settings)

    assert (result.width, result.height) == (512, 512)
    assert len(result.source_cells) == 256
    assert len(result.target_cells) == 256
    assert len(result.assignment) == 256
    assert is_bijection(result.assignment, 256)
    assert len(result.frames) == 61
    assert result.stats["cells"] == 256


def test_run_normalizes_different_sizes():
    settings = pipeline.Settings(cell_size=16)
    src = Image.fromarray(_random_image(100, 90, 2))
    tgt = _random_image(70, 130, 3)
    result = pipeline.run(src, tgt, settings)
    assert (result.width, result.height) == (80, 64)
    assert len(result.assignment) == 20
    assert result.frames.width == 80 and result.frames.height == 64


def test_run_degenerate_grid():
    with pytest.raises(DegenerateGridError):
        pipeline.run(_random_image(10, 10, 4), _random_image(64, 64, 5), pipeline.Settings(cell_size=16))


def test_threaded_extraction_gives_same_assignment():
    src, tgt = _random_image(64, 64, 6), _random_image(64, 64, 7)
    a = pipeline.run(src, tgt, pipeline.Settings(cell_size=8))
    b = pipeline.run(src, tgt, pipeline.Settings(cell_size=8, workers=4))
    assert a.assignment == b.assignment


def test_optimal_mode():
    src, tgt = _random_image(32, 32, 8), _random_image(32, 32, 9)
    result = pipeline.run(src, tgt, pipeline.Settings(cell_size=8, mode="optimal"))
    assert is_bijection(result.assignment, 16)


@pytest.mark.parametrize("kwargs", [
    {"cell_size": 0},
    {"cell_size": 8.5},
    {"gradient_weight": -0.1},
    {"gradient_weight": 1.1},
    {"target_duration_ms": 0},
    {"nominal_fps": 0},
    {"mode": "anneal"},
])
def test_settings_validation(kwargs):
    with pytest.raises(ValueError):
        pipeline.Settings(**kwargs)
