import numpy as np
import pytest

from cellmorph.core import animation, rearrange
from cellmorph.core.blocks import divide_into_cells
from cellmorph.core.errors import SurfaceAcquisitionError
from cellmorph.visualization import render
from cellmorph.visualization.playback import Player


def _sequence(blocks=3, cell=4, duration_ms=2000, fps=30, seed=11):
    rng = np.random.default_rng(seed)
    size = blocks * cell
    src_img = rng.integers(0, 256, size=(size, size, 3), dtype=np.uint8)
    tgt_img = rng.integers(0, 256, size=(size, size, 3), dtype=np.uint8)
    src = divide_into_cells(src_img, cell)
    tgt = divide_into_cells(tgt_img, cell)
    assignment = rearrange.rearrange(src, tgt, 0.5)
    seq = animation.synthesize_frames(src, tgt, assignment, duration_ms=duration_ms, fps=fps)
    return src_img, src, tgt, assignment, seq


def _solid_cell(value, size=2):
    px = np.zeros((size, size, 4), dtype=np.uint8)
    px[...] = (value, value, value, 255)
    return divide_into_cells(px, size)[0]


def test_acquire_surface():
    surface = render.acquire_surface(10, 6)
    assert surface.shape == (6, 10, 4)
    with pytest.raises(SurfaceAcquisitionError):
        render.acquire_surface(0, 6)


def test_first_frame_reproduces_source_image():
    src_img, _, _, _, seq = _sequence()
    surface = render.acquire_surface(seq.width, seq.height)
    render.render_frame(surface, seq[0], seq.width, seq.height)
    assert np.array_equal(surface[..., :3], src_img)
    assert np.all(surface[..., 3] == 255)


def test_last_frame_places_sources_on_targets():
    _, src, tgt, assignment, seq = _sequence()
    surface = render.acquire_surface(seq.width, seq.height)
    render.render_frame(surface, seq[seq.last_index], seq.width, seq.height)
    for m in assignment:
        t = tgt[m.target_index]
        region = surface[t.y:t.y + t.size, t.x:t.x + t.size]
        assert np.array_equal(region, src[m.source_index].pixels)


def test_background_and_half_up_rounding():
    cell = _solid_cell(0)
    frame = animation.Frame(progress=0.5, placements=(animation.Placement(cell, 1.5, 2.5),))
    surface = render.acquire_surface(8, 8)
    render.render_frame(surface, frame, 8, 8)
    assert np.all(surface[3:5, 2:4, :3] == 0)
    assert surface[0, 0].tolist() == [255, 255, 255, 255]
    assert int((surface[..., 0] == 0).sum()) == 4


def test_placements_are_clipped_to_surface():
    cell = _solid_cell(7, size=4)
    frame = animation.Frame(progress=0.5, placements=(
        animation.Placement(cell, -2.0, -2.0),
        animation.Placement(cell, 30.0, 30.0),
    ))
    surface = render.acquire_surface(6, 6)
    render.render_frame(surface, frame, 6, 6)
    assert np.all(surface[0:2, 0:2, :3] == 7)
    assert surface[2, 2, 0] == 255


def test_later_placements_draw_on_top():
    dark, light = _solid_cell(0), _solid_cell(200)
    frame = animation.Frame(progress=1.0, placements=(
        animation.Placement(dark, 0.0, 0.0),
        animation.Placement(light, 1.0, 0.0),
    ))
    surface = render.acquire_surface(4, 2)
    render.render_frame(surface, frame, 4, 2)
    assert surface[0, 1, 0] == 200


def test_blit_thinning_only_for_intermediate_large_frames():
    cell = _solid_cell(0)
    n = render.THINNING_THRESHOLD + 1
    placements = tuple(animation.Placement(cell, 0.0, 0.0) for _ in range(n))

    middle = animation.Frame(progress=0.5, placements=placements)
    order = render.blit_order(middle)
    assert order[:3] == (0, 2, 4)
    assert sorted(order) == list(range(n))

    for progress in (0.0, 1.0):
        edge = animation.Frame(progress=progress, placements=placements)
        assert render.blit_order(edge) == tuple(range(n))
    assert render.blit_order(middle, thinning=False) == tuple(range(n))

    small = animation.Frame(progress=0.5, placements=placements[:10])
    assert render.blit_order(small) == tuple(range(10))


def test_surface_checks():
    _, _, _, _, seq = _sequence(blocks=1)
    with pytest.raises(SurfaceAcquisitionError):
        render.render_frame(np.zeros((2, 2, 4), dtype=np.uint8), seq[0], seq.width, seq.height)
    ro = render.acquire_surface(seq.width, seq.height)
    ro.setflags(write=False)
    with pytest.raises(SurfaceAcquisitionError):
        render.render_frame(ro, seq[0], seq.width, seq.height)


def test_player_ticks_pause_and_resume():
    _, _, _, _, seq = _sequence(duration_ms=200)
    surface = render.acquire_surface(seq.width, seq.height)
    player = Player(seq, delay_ms=10)

    assert not player.tick(surface, 0)
    player.play()
    assert player.tick(surface, 0)
    assert player.index == 0
    assert not player.tick(surface, 5)
    assert player.tick(surface, 10)
    assert player.index == 1

    player.pause()
    assert not player.tick(surface, 100)
    assert player.index == 1

    player.play()
    assert player.index == 1
    now = 200
    while player.playing:
        player.tick(surface, now)
        now += 10
    assert player.index == seq.last_index

    expected = render.acquire_surface(seq.width, seq.height)
    render.render_frame(expected, seq[seq.last_index], seq.width, seq.height)
    assert np.array_equal(surface, expected)

    # playing again from the end restarts
    player.play()
    assert player.index == 0


def test_player_default_delay_and_seek():
    _, _, _, _, seq = _sequence()
    player = Player(seq)
    assert player.delay_ms == animation.playback_delay_ms(seq.cell_count, len(seq))
    surface = render.acquire_surface(seq.width, seq.height)
    player.seek(10_000, surface)
    assert player.index == seq.last_index
