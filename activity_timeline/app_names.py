"""Application names reported by window watchers for browsers and editors."""

from __future__ import annotations

from typing import Iterable, Optional

BROWSER_APP_NAMES: dict[str, tuple[str, ...]] = {
    "chrome": ("Google Chrome", "chrome.exe", "Google-chrome", "google-chrome", "chrome"),
    "chromium": ("Chromium", "chromium-browser", "chromium"),
    "firefox": (
        "Firefox",
        "firefox.exe",
        "firefox",
        "Firefox Developer Edition",
        "firefoxdeveloperedition",
        "Firefox-esr",
        "Firefox Beta",
        "Nightly",
        "org.mozilla.firefox",
    ),
    "opera": ("opera.exe", "Opera"),
    "brave": ("brave.exe", "Brave", "Brave Browser", "brave-browser"),
    "edge": ("msedge.exe", "Microsoft Edge", "microsoft-edge"),
    "vivaldi": ("Vivaldi-stable", "Vivaldi-snapshot", "vivaldi.exe", "Vivaldi"),
    "safari": ("Safari",),
    "arc": ("Arc",),
}

EDITOR_APP_NAMES: dict[str, tuple[str, ...]] = {
    "vscode": ("Code", "code.exe", "Visual Studio Code", "VSCode", "code"),
    "cursor": ("Cursor", "cursor"),
    "vim": ("vim", "nvim", "gvim", "neovim"),
    "emacs": ("emacs", "Emacs"),
    "sublime": ("sublime_text", "Sublime Text", "subl"),
    "intellij": ("idea", "IntelliJ IDEA", "jetbrains-idea"),
    "pycharm": ("pycharm", "PyCharm", "jetbrains-pycharm"),
    "webstorm": ("webstorm", "WebStorm", "jetbrains-webstorm"),
    "zed": ("Zed", "zed"),
}

SYSTEM_APPS = frozenset(
    {
        "loginwindow",
        "Dock",
        "Finder",
        "SystemUIServer",
        "Window Server",
        "WindowServer",
        "Control Center",
        "Notification Center",
        "Spotlight",
        "screensaver",
        "ScreenSaverEngine",
        "lockscreen",
        "LockScreen",
        "gnome-shell",
        "plasmashell",
        "explorer.exe",
        "dwm.exe",
        "ApplicationFrameHost.exe",
    }
)

TERMINAL_APPS = ("kgx", "gnome-terminal", "konsole", "Terminal", "iTerm2", "Alacritty", "kitty")

IDE_APPS = (
    "jetbrains-webstorm",
    "jetbrains-pycharm",
    "jetbrains-idea",
    "jetbrains-goland",
    "jetbrains-rider",
    "jetbrains-clion",
    "jetbrains-phpstorm",
    "jetbrains-rubymine",
    "Code",
    "Visual Studio Code",
    "VSCode",
)

# IDE window titles that belong to modal dialogs rather than editing
DIALOG_PATTERNS = (
    "Confirm Exit",
    "Accept All Changes?",
    "Rename",
    "Delete",
    "Move",
    "Tip of the Day",
    "New Agent Session",
    "Commit:",
    "Push",
    "Pull",
    "Merge",
    "Rebase",
)


def normalize_names(names: Iterable[str]) -> frozenset[str]:
    return frozenset(name.strip().lower() for name in names if name and name.strip())


DEFAULT_BROWSER_APPS = normalize_names(name for names in BROWSER_APP_NAMES.values() for name in names)
DEFAULT_EDITOR_APPS = normalize_names(name for names in EDITOR_APP_NAMES.values() for name in names)


def detect_editor_type(bucket_id: str) -> Optional[str]:
    """Guess the editor from a watcher bucket id, e.g. ``aw-watcher-vim_host``."""

    lowered = bucket_id.lower()
    for editor in EDITOR_APP_NAMES:
        if editor in lowered:
            return editor
    return None
