import pytest

from opct.cli import build_parser, main
from opct.images import list_images
from opct.version import version_lines


def test_version_prints_version_lines(capsys):
    assert main(["version"]) == 0
    assert capsys.readouterr().out.splitlines() == version_lines()


def test_get_without_subcommand(capsys):
    assert main(["get"]) == 0
    assert capsys.readouterr().out == "Nothing to do. See -h for more options.\n"


def test_get_images(capsys):
    assert main(["get", "images"]) == 0
    assert capsys.readouterr().out.splitlines() == list_images()


def test_get_images_to_repository(capsys):
    assert main(["get", "images", "--to-repository", "registry.example.io:5000"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == list_images("registry.example.io:5000")
    assert all(line.split(" ")[1].startswith("registry.example.io:5000/") for line in lines)


def test_adm_prints_help(capsys):
    assert main(["adm"]) == 0
    assert "usage: opct adm" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage: opct" in capsys.readouterr().out


def test_unknown_command_exits():
    with pytest.raises(SystemExit) as info:
        main(["bogus"])
    assert info.value.code == 2


def test_parser_reads_to_repository():
    args = build_parser().parse_args(["get", "images", "--to-repository", "mirror.example.com"])
    assert args.to_repository == "mirror.example.com"