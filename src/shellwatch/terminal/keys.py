"""Keystroke notation used by the agent, mapped to tmux key names.

``"y<Enter>"`` becomes ``["y", "Enter"]``; special keys are matched
case-insensitively and anything else is sent one character at a time.
"""

from __future__ import annotations

SPECIAL_KEYS: dict[str, str] = {
    "enter": "Enter",
    "tab": "Tab",
    "escape": "Escape",
    "esc": "Escape",
    "backspace": "BSpace",
    "delete": "DC",
    "del": "DC",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
    "home": "Home",
    "end": "End",
    "pageup": "PPage",
    "pagedown": "NPage",
    "space": "Space",
    "ctrl+c": "C-c",
    "ctrl+d": "C-d",
    "ctrl+z": "C-z",
    "ctrl+l": "C-l",
    "ctrl+a": "C-a",
    "ctrl+e": "C-e",
    "ctrl+k": "C-k",
    "ctrl+u": "C-u",
    "ctrl+w": "C-w",
    "ctrl+r": "C-r",
}

TMUX_KEY_NAMES = frozenset(SPECIAL_KEYS.values())


def parse_keys(text: str) -> list[str]:
    """Split agent keystroke notation into tmux keys."""
    keys: list[str] = []
    lowered = text.lower()
    i = 0

    while i < len(text):
        if text[i] == "<":
            end = lowered.find(">", i)
            name = lowered[i + 1 : end] if end != -1 else ""
            tmux_key = SPECIAL_KEYS.get(name)
            if tmux_key is not None:
                keys.append(tmux_key)
                i = end + 1
                continue
        keys.append(text[i])
        i += 1

    return keys


def group_keys(keys: list[str]) -> list[tuple[bool, str]]:
    """Merge consecutive literal characters.

    Returns:
        ``(is_literal, value)`` pairs: literal runs go to ``send-keys -l``,
        special keys are sent by name.
    """
    groups: list[tuple[bool, str]] = []
    literal: list[str] = []

    for key in keys:
        if key in TMUX_KEY_NAMES and len(key) > 1:
            if literal:
                groups.append((True, "".join(literal)))
                literal = []
            groups.append((False, key))
        else:
            literal.append(key)

    if literal:
        groups.append((True, "".join(literal)))
    return groups
