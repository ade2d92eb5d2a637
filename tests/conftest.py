import pytest

from mrz_rows import OcrFragment

TD3_LINE1 = "P<UTOERIKSSON<<ANNA<MARIA".ljust(44, "<")
TD3_LINE2 = "L898902C36UTO7408122F1204159ZE184226B<<<<<10"
# optional check replaced by a filler: only the relaxed mode accepts it
TD3_LINE2_DAMAGED_OPTIONAL = "L898902C36UTO7408122F1204159ZE184226B<<<<<<1"

TD2_LINE1 = "I<UTOERIKSSON<<ANNA<MARIA".ljust(36, "<")
TD2_LINE2 = "D231458907UTO7408122F1204159<<<<<<<6"

TD1_LINE1 = "I<UTOD231458907".ljust(30, "<")
TD1_LINE2 = "7408122F1204159UTO<<<<<<<<<<<6"
TD1_LINE3 = "ERIKSSON<<ANNA<MARIA".ljust(30, "<")


@pytest.fixture
def td3_lines():
    return [TD3_LINE1, TD3_LINE2]


@pytest.fixture
def td2_lines():
    return [TD2_LINE1, TD2_LINE2]


@pytest.fixture
def td1_lines():
    return [TD1_LINE1, TD1_LINE2, TD1_LINE3]


def frame_fragments(lines, top=100.0, spacing=30.0, height=20.0):
    """One positioned fragment per line, stacked top to bottom."""
    return [
        OcrFragment(raw=line, center_y=top + i * spacing, left=10.0, height=height)
        for i, line in enumerate(lines)
    ]


@pytest.fixture
def td3_frame():
    return frame_fragments([TD3_LINE1, TD3_LINE2])
