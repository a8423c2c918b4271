"""Details parsed from terminal and IDE window titles."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from activity_timeline.app_names import DIALOG_PATTERNS, IDE_APPS, TERMINAL_APPS
from activity_timeline.schema import IdeInfo, TerminalInfo

_TERMINAL_TITLE_RE = re.compile(r"^([^@]+)@([^:]+):\s*(.+)$")
# JetBrains separates project and file with an en dash
_IDE_TITLE_RE = re.compile("^([^–]+)–(.+)$")


def _app_matches(app: str, names: Iterable[str]) -> bool:
    lowered = app.lower()
    return any(name.lower() in lowered for name in names)


def is_terminal_app(app: str, names: Iterable[str] = TERMINAL_APPS) -> bool:
    return _app_matches(app, names)


def is_ide_app(app: str, names: Iterable[str] = IDE_APPS) -> bool:
    return _app_matches(app, names)


def is_dialog_title(title: str, patterns: Iterable[str] = DIALOG_PATTERNS) -> bool:
    return any(pattern in title for pattern in patterns)


def parse_terminal_title(title: str, local_hostname: str = "unknown") -> Optional[TerminalInfo]:
    """Parse ``user@host: ~/dir`` style titles; ``None`` for anything else.

    A host other than ``local_hostname`` marks the session as remote over SSH.
    """

    match = _TERMINAL_TITLE_RE.match(title)
    if not match:
        return None
    username, hostname, directory = (part.strip() for part in match.groups())
    remote = hostname != local_hostname
    return TerminalInfo(username=username, hostname=hostname, directory=directory, is_remote=remote, is_ssh=remote)


def parse_ide_title(title: str, dialog_patterns: Iterable[str] = DIALOG_PATTERNS) -> IdeInfo:
    if is_dialog_title(title, dialog_patterns):
        return IdeInfo(is_dialog=True, dialog_type=title)

    match = _IDE_TITLE_RE.match(title)
    if not match:
        return IdeInfo(project=title.strip() or None)
    project, file = (part.strip() for part in match.groups())
    return IdeInfo(project=project or None, file=file or None)
