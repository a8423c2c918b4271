from activity_timeline.title_parser import (
    is_dialog_title,
    is_ide_app,
    is_terminal_app,
    parse_ide_title,
    parse_terminal_title,
)


def test_terminal_title_with_local_host():
    info = parse_terminal_title("dev@laptop: ~/src/timeline", local_hostname="laptop")
    assert info.username == "dev"
    assert info.hostname == "laptop"
    assert info.directory == "~/src/timeline"
    assert not info.is_remote
    assert not info.is_ssh


def test_terminal_title_on_other_host_is_remote():
    info = parse_terminal_title("root@db-01:/var/log", local_hostname="laptop")
    assert info.hostname == "db-01"
    assert info.directory == "/var/log"
    assert info.is_remote and info.is_ssh


def test_plain_terminal_titles_are_not_parsed():
    assert parse_terminal_title("Console") is None
    assert parse_terminal_title("") is None


def test_ide_title_project_and_file():
    info = parse_ide_title("timeline – canonical.py")
    assert not info.is_dialog
    assert info.project == "timeline"
    assert info.file == "canonical.py"

    only_project = parse_ide_title("timeline")
    assert only_project.project == "timeline"
    assert only_project.file is None


def test_ide_dialogs_are_flagged():
    info = parse_ide_title("Commit: timeline")
    assert info.is_dialog
    assert info.dialog_type == "Commit: timeline"
    assert info.project is None
    assert is_dialog_title("Tip of the Day")
    assert not is_dialog_title("timeline – grouping.py")


def test_app_recognition_is_substring_and_case_insensitive():
    assert is_terminal_app("gnome-terminal-server")
    assert is_terminal_app("iterm2")
    assert not is_terminal_app("Firefox")
    assert is_ide_app("jetbrains-pycharm-ce")
    assert is_ide_app("Code")
    assert not is_ide_app("Slack")
