import PIL.Image
import pytest

import render as cli


def _small(tmp_path, *extra):
    return ["--size", "16", "--max-iterations", "60", "--band-height", "8", "--output", str(tmp_path / "out.png"), *extra]


def test_renders_and_antialiases(tmp_path):
    assert cli.main(["-0.75", "0", "3.5", *_small(tmp_path)]) == 0
    with PIL.Image.open(tmp_path / "out.png") as image:
        assert image.size == (8, 8)


def test_no_antialias_keeps_full_size(tmp_path):
    assert cli.main(_small(tmp_path, "--no-antialias")) == 0
    with PIL.Image.open(tmp_path / "out.png") as image:
        assert image.size == (16, 16)


def test_default_view_when_positionals_omitted():
    parser = cli.build_parser()
    opt = parser.parse_args([])
    window = cli.resolve_window(opt, parser)
    assert window.center == complex(-0.75, 0.0)
    assert window.span == 3.5


def test_negative_center_is_parsed():
    parser = cli.build_parser()
    opt = parser.parse_args(["-1.25", "-0.1", "0.02"])
    window = cli.resolve_window(opt, parser)
    assert window.center == complex(-1.25, -0.1)
    assert window.span == 0.02


def test_partial_positionals_are_rejected(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["-0.75", "0", *_small(tmp_path)])
    assert excinfo.value.code == 2


@pytest.mark.parametrize("args", [["0", "0", "0"], ["0", "0", "-1"]])
def test_non_positive_span_is_rejected(tmp_path, args):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([*args, *_small(tmp_path)])
    assert excinfo.value.code == 2


@pytest.mark.parametrize("option", [["--size", "0"], ["--max-iterations", "0"], ["--escape-radius", "1"]])
def test_invalid_render_settings_are_rejected(tmp_path, option):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([*_small(tmp_path), *option])
    assert excinfo.value.code == 2


def test_extension_must_match_format(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--output", str(tmp_path / "out.jpg"), "--format", "png"])
    assert excinfo.value.code == 2


def test_missing_suffix_is_added(tmp_path):
    opt = cli.build_parser().parse_args(["--output", str(tmp_path / "picture"), "--format", "jpg"])
    config = cli.resolve_output_config(opt, cli.build_parser())
    assert config.image_path.name == "picture.jpg"
    assert config.image_format == "jpg"


def test_write_failure_exits_with_status_one(tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    args = ["--size", "8", "--max-iterations", "20", "--output", str(blocker / "out.png")]
    assert cli.main(args) == 1
    assert "Could not write" in capsys.readouterr().err
