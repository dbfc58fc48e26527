import io

import pytest

from cpisync.help import main, print_help


def _render(path):
    buf = io.StringIO()
    print_help(path, buf)
    return buf.getvalue()


def test_overview_without_path():
    text = _render(None)
    assert text.startswith("Sync module\n")
    assert "  iflowkit sync <command> [args]\n" in text


def test_empty_path_is_overview():
    assert _render([]) == _render(None)


def test_unknown_topic_falls_back_to_overview():
    assert _render(["nope"]) == _render(None)


@pytest.mark.parametrize(
    "topic, usage",
    [
        ("init", "  iflowkit sync init --id <packageId> [--dir <parentPath>]"),
        ("push", "  iflowkit sync push [--to dev|qas|prd] [--message <commitMessage>]"),
        ("pull", "  iflowkit sync pull [--to dev|qas|prd] [--message <commitMessage>]"),
        ("deploy", "  iflowkit sync deploy status [--env dev|qas|prd] [--transport <transportId>]"),
        ("deliver", "  iflowkit sync deliver --to qas|prd [--message <commitMessage>]"),
        ("compare", "  iflowkit sync compare --to qas|prd"),
    ],
)
def test_topic_usage_lines(topic, usage):
    text = _render([topic])
    assert usage + "\n" in text
    assert text != _render(None)
    assert text.endswith("\n\n")


def test_topic_uses_first_path_element_only():
    assert _render(["push", "extra"]) == _render(["push"])


def test_main_without_args_prints_overview(capsys):
    assert main([]) == 0
    assert capsys.readouterr().out == _render(None)


def test_main_help_topic(capsys):
    assert main(["help", "deliver"]) == 0
    assert capsys.readouterr().out == _render(["deliver"])


def test_main_command_help_flag(capsys):
    assert main(["compare", "--help"]) == 0
    assert capsys.readouterr().out == _render(["compare"])


def test_main_unknown_command(capsys):
    assert main(["bogus"]) == 1
    captured = capsys.readouterr()
    assert captured.out == _render(None)
    assert "unknown sync command: bogus" in captured.err


def test_main_known_command_without_help_flag(capsys):
    assert main(["push"]) == 2
    captured = capsys.readouterr()
    assert captured.out == _render(["push"])
    assert "push" in captured.err