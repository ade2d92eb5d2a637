import json

from conftest import TD3_LINE1, TD3_LINE2

from client import main


def _frame(tmp_path, name, lines):
    path = tmp_path / name
    path.write_text("\n".join(lines), encoding="utf-8")
    return str(path)


def test_text_frames_until_accepted(tmp_path, capsys):
    frame = _frame(tmp_path, "frame1.txt", ["PASSPORT", TD3_LINE1, TD3_LINE2])
    again = _frame(tmp_path, "frame2.txt", [TD3_LINE1, TD3_LINE2])

    assert main(["--text", frame, again]) == 0
    out = capsys.readouterr().out
    assert '"status": "accumulating"' in out
    assert '"status": "accepted"' in out


def test_text_frames_without_mrz(tmp_path, capsys):
    frame = _frame(tmp_path, "frame.txt", ["PASSPORT", "UTOPIA"])

    assert main(["--text", frame]) == 1
    assert json.loads(capsys.readouterr().out)["status"] == "no_match"
