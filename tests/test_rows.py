import itertools

import pytest
from conftest import TD3_LINE1, TD3_LINE2

from mrz_rows import (
    OcrFragment,
    assemble_rows,
    center_tolerance,
    filter_fragments,
    fragments_from_lines,
    looks_like_mrz_line,
    normalize_mrz_line,
    pad_to_length,
)


def test_normalize_mrz_line():
    assert normalize_mrz_line(" p<uto eriks-son\t") == "P<UTOERIKSSON"
    assert normalize_mrz_line("«»  ") == ""


def test_fragment_normalizes_on_creation():
    frag = OcrFragment(raw="l898 902c3", center_y=5.0)
    assert frag.norm == "L898902C3"
    assert frag.has_position
    assert not OcrFragment(raw="ABC").has_position


@pytest.mark.parametrize("s", ["", "ABC", TD3_LINE1, TD3_LINE1 + "XYZ"])
def test_pad_to_length_is_idempotent(s):
    once = pad_to_length(s, 44)
    assert len(once) == 44
    assert pad_to_length(once, 44) == once


def test_pad_to_length_pads_and_truncates():
    assert pad_to_length("ab", 5) == "AB<<<"
    assert pad_to_length("ABCDEFG", 3) == "ABC"
    assert pad_to_length(None, 2) == "<<"
    with pytest.raises(ValueError):
        pad_to_length("A", -1)


def test_looks_like_mrz_line():
    assert looks_like_mrz_line(TD3_LINE1)
    assert looks_like_mrz_line("AB<<<")
    assert not looks_like_mrz_line("REPUBLICOFUTOPIA")
    assert not looks_like_mrz_line("A<")
    assert not looks_like_mrz_line("")
    # the floor is a tuning knob
    assert looks_like_mrz_line("A<", filler_floor=1)


def test_filter_fragments_drops_short_plain_text():
    frags = fragments_from_lines(["PASSPORT", "AB<<<", "", "UNITEDKINGDOMOF"])
    assert [f.norm for f in filter_fragments(frags)] == ["AB<<<", "UNITEDKINGDOMOF"]


def test_same_line_fragments_merge_left_to_right():
    right = OcrFragment(raw=TD3_LINE1[20:], center_y=100.0, left=300.0, height=20.0)
    left = OcrFragment(raw=TD3_LINE1[:20], center_y=100.0, left=10.0, height=20.0)

    assert TD3_LINE1[:20] == "P<UTOERIKSSON<<ANNA<"
    assert assemble_rows([right, left]) == [TD3_LINE1]


def _broken_line():
    return [
        OcrFragment(raw="L898902C36UTO", center_y=100.0, left=10.0, height=20.0),
        OcrFragment(raw="7408122F1204159", center_y=101.0, left=150.0, height=20.0),
        OcrFragment(raw="ZE184226B<<<<<10", center_y=99.0, left=300.0, height=20.0),
    ]


def test_line_broken_into_three_fragments_reassembles():
    frags = _broken_line()
    assert assemble_rows([frags[2], frags[0], frags[1]]) == [TD3_LINE2]


def test_assembly_ignores_input_order_within_a_line():
    results = {tuple(assemble_rows(list(p))) for p in itertools.permutations(_broken_line())}
    assert results == {(TD3_LINE2,)}


def test_distinct_lines_stay_separate_and_ordered_top_down():
    bottom = OcrFragment(raw=TD3_LINE2, center_y=130.0, left=12.0, height=20.0)
    top = OcrFragment(raw=TD3_LINE1, center_y=100.0, left=10.0, height=20.0)

    assert assemble_rows([bottom, top]) == [TD3_LINE1, TD3_LINE2]


def test_three_td1_rows_stay_separate(td1_lines):
    frags = [
        OcrFragment(raw=line, center_y=200.0 + 25 * i, left=5.0, height=18.0)
        for i, line in enumerate(td1_lines)
    ]
    assert assemble_rows(frags) == td1_lines


def test_unknown_positions_keep_arrival_order():
    frags = fragments_from_lines([TD3_LINE2, "PASSPORT", TD3_LINE1])
    assert assemble_rows(frags) == [TD3_LINE2, TD3_LINE1]


def test_centers_without_heights_group_nearby_fragments():
    frags = [
        OcrFragment(raw="AAAAAAAAAAAA", center_y=10.0, left=50.0),
        OcrFragment(raw="BBBBBBBBBBBB", center_y=12.0, left=1.0),
        OcrFragment(raw="CCCCCCCCCCCC", center_y=80.0, left=0.0),
        OcrFragment(raw="DDDDDDDDDDDD", center_y=82.0, left=9.0),
    ]
    assert assemble_rows(frags) == [
        "BBBBBBBBBBBBAAAAAAAAAAAA",
        "CCCCCCCCCCCCDDDDDDDDDDDD",
    ]


def test_two_lines_without_heights_are_ordered_top_down():
    frags = [
        OcrFragment(raw="XXXXXXXXXXXX", center_y=50.0, left=40.0),
        OcrFragment(raw="YYYYYYYYYYYY", center_y=10.0, left=5.0),
    ]
    assert assemble_rows(frags) == ["YYYYYYYYYYYY", "XXXXXXXXXXXX"]


def test_same_line_fragments_merge_without_heights():
    right = OcrFragment(raw=TD3_LINE1[20:], center_y=100.0, left=300.0)
    left = OcrFragment(raw=TD3_LINE1[:20], center_y=100.0, left=10.0)

    assert assemble_rows([right, left]) == [TD3_LINE1]


@pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
def test_broken_line_reassembles_without_heights(order):
    frags = [
        OcrFragment(raw="L898902C36UTO", center_y=100.0, left=10.0),
        OcrFragment(raw="7408122F1204159", center_y=101.0, left=150.0),
        OcrFragment(raw="ZE184226B<<<<<10", center_y=99.0, left=300.0),
    ]
    assert assemble_rows([frags[i] for i in order]) == [TD3_LINE2]


def test_broken_two_row_frame_without_heights():
    frags = [
        OcrFragment(raw="ZE184226B<<<<<10", center_y=131.0, left=300.0),
        OcrFragment(raw=TD3_LINE1[20:], center_y=101.0, left=300.0),
        OcrFragment(raw="L898902C36UTO", center_y=129.0, left=10.0),
        OcrFragment(raw=TD3_LINE1[:20], center_y=100.0, left=10.0),
        OcrFragment(raw="7408122F1204159", center_y=130.0, left=150.0),
    ]
    assert assemble_rows(frags) == [TD3_LINE1, TD3_LINE2]


def test_three_td1_rows_stay_separate_without_heights(td1_lines):
    frags = [OcrFragment(raw=line, center_y=200.0 + 25 * i, left=5.0) for i, line in enumerate(td1_lines)]
    assert assemble_rows(frags) == td1_lines


def test_center_tolerance():
    frags = [OcrFragment(raw="A", center_y=y, left=1.0) for y in (100.0, 101.0, 140.0)]
    assert center_tolerance(frags) == pytest.approx(9.75)
    assert center_tolerance(frags[:2]) == 4.0
    assert center_tolerance(frags, floor=12.0) == 12.0
    assert center_tolerance([]) == 4.0


def test_fragments_without_position_follow_placed_rows_in_arrival_order():
    frags = [
        OcrFragment(raw="NOPOSITIONONE<<<"),
        OcrFragment(raw=TD3_LINE2, center_y=130.0, left=10.0),
        OcrFragment(raw="NOPOSITIONTWO<<<", center_y=0.0, left=0.0, height=0.0),
        OcrFragment(raw=TD3_LINE1, center_y=100.0, left=10.0),
    ]
    assert assemble_rows(frags) == [TD3_LINE1, TD3_LINE2, "NOPOSITIONONE<<<", "NOPOSITIONTWO<<<"]


def test_assemble_rows_empty():
    assert assemble_rows([]) == []
    assert assemble_rows(fragments_from_lines(["", "SHORT"])) == []
