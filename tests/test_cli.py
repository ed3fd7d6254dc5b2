import io

import pytest
from PIL import Image

from cli.compress import EXIT_BAD_INPUT, EXIT_IO, EXIT_OK, build_parser, interactive, main


@pytest.fixture
def in_png(tmp_path, gradient):
    path = tmp_path / "in.png"
    Image.fromarray(gradient).save(path)
    return path


def test_methods(capsys):
    assert main(["methods"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "1. Variance" in out
    assert "5. Structural Similarity Index" in out


def test_compress(tmp_path, in_png, capsys):
    out = tmp_path / "out.png"
    code = main(["compress", str(in_png), str(out), "--method", "entropy", "--threshold", "1.5", "--min-block", "2"])
    assert code == EXIT_OK
    assert out.is_file()
    assert "Number of nodes" in capsys.readouterr().out


def test_compress_with_target_ratio_and_gif(tmp_path, in_png):
    out = tmp_path / "out.png"
    gif = tmp_path / "steps.gif"
    code = main(["compress", str(in_png), str(out), "--method", "2", "--target-ratio", "0.8", "--gif", str(gif)])
    assert code == EXIT_OK
    assert gif.is_file()


@pytest.mark.parametrize("extra", [
    ["--threshold", "-1"],
    ["--min-block", "0"],
    ["--target-ratio", "2"],
    ["--method", "sharpness"],
])
def test_bad_input(tmp_path, in_png, capsys, extra):
    code = main(["compress", str(in_png), str(tmp_path / "o.png")] + extra)
    assert code == EXIT_BAD_INPUT
    assert "bad input" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    code = main(["compress", str(tmp_path / "missing.png"), str(tmp_path / "o.png")])
    assert code == EXIT_IO
    assert "I/O failure" in capsys.readouterr().err


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_interactive_reasks_on_bad_answers(tmp_path, in_png, capsys):
    out = tmp_path / "out.png"
    junk = tmp_path / "junk.png"
    junk.write_bytes(b"junk")
    answers = iter([
        str(tmp_path / "missing.png"), str(junk), str(in_png),
        "9", "1",
        "abc", "-3", "50",
        "0", "2",
        "1.5", "0",
        "out.txt", str(out),
        "",
    ])
    assert interactive(ask=lambda prompt: next(answers)) == EXIT_OK
    assert out.is_file()
    printed = capsys.readouterr().out
    assert printed.count("Error:") == 8
    assert "not a readable image" in printed


def test_interactive_end_of_input_is_bad_input(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    assert main(["interactive"]) == EXIT_BAD_INPUT
    assert "input ended" in capsys.readouterr().err
