import random

import pytest

from imgpack.rectpack import MAX_VALUE, Heuristic, Rect, RectPacker


def _overlap(a, b):
    return a.x < b.x + b.w and b.x < a.x + a.w and a.y < b.y + b.h and b.y < a.y + a.h


def _check_layout(rects, width, height):
    placed = [r for r in rects if r.was_packed and r.w and r.h]
    for r in placed:
        assert 0 <= r.x and r.x + r.w <= width
        assert 0 <= r.y and r.y + r.h <= height
    for i, a in enumerate(placed):
        for b in placed[i + 1:]:
            assert not _overlap(a, b)


def _random_rects(seed, count, max_side):
    rng = random.Random(seed)
    return [Rect(i, rng.randint(1, max_side), rng.randint(1, max_side)) for i in range(count)]


def test_single_rect_goes_to_origin():
    packer = RectPacker(64, 64, 64)
    rect = Rect(0, 10, 12)
    assert packer.pack_rects([rect]) is True
    assert (rect.x, rect.y, rect.was_packed) == (0, 0, True)


def test_tallest_rect_is_placed_first():
    packer = RectPacker(16, 16, 16)
    small = Rect(0, 2, 2)
    tall = Rect(1, 3, 8)
    assert packer.pack_rects([small, tall])
    assert (tall.x, tall.y) == (0, 0)
    assert (small.x, small.y) == (tall.w, 0)


def test_order_of_input_list_preserved():
    packer = RectPacker(32, 32, 32)
    rects = [Rect(i, 2 + i, 1 + i) for i in range(5)]
    packer.pack_rects(rects)
    assert [r.id for r in rects] == list(range(5))


@pytest.mark.parametrize("heuristic", list(Heuristic))
@pytest.mark.parametrize("seed", [1, 2, 3])
def test_random_layout_has_no_overlaps(heuristic, seed):
    packer = RectPacker(256, 256, 256)
    packer.setup_heuristic(heuristic)
    rects = _random_rects(seed, 40, 30)
    result = packer.pack_rects(rects)
    assert result == all(r.was_packed for r in rects)
    _check_layout(rects, 256, 256)


def test_too_large_rect_is_rejected():
    packer = RectPacker(32, 32, 32)
    big = Rect(0, 40, 4)
    ok = Rect(1, 4, 4)
    assert packer.pack_rects([big, ok]) is False
    assert big.was_packed is False
    assert (big.x, big.y) == (MAX_VALUE, MAX_VALUE)
    assert ok.was_packed is True


def test_overflowing_area_reports_failure():
    packer = RectPacker(10, 10, 10)
    rects = [Rect(i, 6, 6) for i in range(3)]
    assert packer.pack_rects(rects) is False
    assert sum(r.was_packed for r in rects) == 1
    _check_layout(rects, 10, 10)


def test_empty_rect_needs_no_space():
    packer = RectPacker(8, 8, 8)
    empty = Rect(0, 0, 5)
    full = Rect(1, 8, 8)
    assert packer.pack_rects([empty, full]) is True
    assert (empty.x, empty.y, empty.was_packed) == (0, 0, True)
    assert (full.x, full.y) == (0, 0)


def test_exact_fill_packs_everything():
    packer = RectPacker(8, 8, 8)
    rects = [Rect(i, 4, 4) for i in range(4)]
    assert packer.pack_rects(rects) is True
    assert sorted((r.x, r.y) for r in rects) == [(0, 0), (0, 4), (4, 0), (4, 4)]


def test_out_of_nodes_fails_when_allowed():
    packer = RectPacker(10, 10, 1)
    packer.setup_allow_out_of_mem(True)
    first, second = Rect(0, 2, 2), Rect(1, 2, 2)
    assert packer.pack_rects([first, second]) is False
    assert first.was_packed is True
    assert second.was_packed is False
    assert (second.x, second.y) == (MAX_VALUE, MAX_VALUE)


def test_alignment_depends_on_node_count():
    packer = RectPacker(10, 10, 3)
    assert packer.align == 4
    packer.setup_allow_out_of_mem(True)
    assert packer.align == 1


def test_repeated_calls_continue_in_same_target():
    packer = RectPacker(16, 16, 16)
    first = [Rect(0, 8, 8)]
    second = [Rect(1, 8, 8)]
    assert packer.pack_rects(first)
    assert packer.pack_rects(second)
    _check_layout(first + second, 16, 16)


def test_unknown_heuristic_raises():
    packer = RectPacker(8, 8, 8)
    with pytest.raises(ValueError):
        packer.setup_heuristic(5)


def test_zero_nodes_raises():
    with pytest.raises(ValueError):
        RectPacker(8, 8, 0)


def test_default_heuristic_is_bottom_left():
    packer = RectPacker(8, 8, 8)
    assert packer.heuristic == Heuristic.SKYLINE_BL_SORT_HEIGHT
    packer.setup_heuristic(1)
    assert packer.heuristic == Heuristic.SKYLINE_BF_SORT_HEIGHT