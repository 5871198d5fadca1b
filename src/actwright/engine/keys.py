"""
Key names accepted by the `press` method, mapped to the driver's names.
"""

from typing import Dict, Optional

MODIFIERS: Dict[str, str] = {
    "shift": "Shift",
    "control": "Control",
    "ctrl": "Control",
    "alt": "Alt",
    "option": "Alt",
    "meta": "Meta",
    "cmd": "Meta",
    "command": "Meta",
    "controlormeta": "ControlOrMeta",
}

NAMED_KEYS: Dict[str, str] = {
    "enter": "Enter",
    "return": "Enter",
    "tab": "Tab",
    "escape": "Escape",
    "esc": "Escape",
    "backspace": "Backspace",
    "delete": "Delete",
    "del": "Delete",
    "insert": "Insert",
    "space": " ",
    "spacebar": " ",
    "arrowup": "ArrowUp",
    "up": "ArrowUp",
    "arrowdown": "ArrowDown",
    "down": "ArrowDown",
    "arrowleft": "ArrowLeft",
    "left": "ArrowLeft",
    "arrowright": "ArrowRight",
    "right": "ArrowRight",
    "home": "Home",
    "end": "End",
    "pageup": "PageUp",
    "pagedown": "PageDown",
}
NAMED_KEYS.update({f"f{i}": f"F{i}" for i in range(1, 13)})


def _single_key(part: str) -> Optional[str]:
    lowered = part.strip().lower()
    if lowered in NAMED_KEYS:
        return NAMED_KEYS[lowered]
    if lowered in MODIFIERS:
        return MODIFIERS[lowered]
    if len(part) == 1 and part.isprintable():
        return part
    return None


def canonical_key(key_name: str) -> Optional[str]:
    """
    Map a key name (or `Modifier+Key` combo) to the driver's key name.

    Returns:
        The canonical name, or None if the key is unknown

    Example:
        >>> canonical_key("enter")
        'Enter'
        >>> canonical_key("ctrl+a")
        'Control+a'
    """
    if not key_name:
        return None
    if len(key_name) == 1:
        return _single_key(key_name)

    parts = key_name.split("+")
    if len(parts) == 1 or any(not p for p in parts):
        return _single_key(key_name)

    *modifiers, last = parts
    names = []
    for modifier in modifiers:
        canonical = MODIFIERS.get(modifier.strip().lower())
        if canonical is None:
            return None
        names.append(canonical)
    final = _single_key(last)
    if final is None:
        return None
    names.append(final)
    return "+".join(names)
