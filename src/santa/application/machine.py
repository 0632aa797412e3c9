"""
XState-compatible conversation machine using xstate-python.

Loads standard XState JSON (id, initial, states with on: { EVENT: target })
and uses the library for transitions. The same JSON opens in Stately Studio.
"""

import json
import os
from pathlib import Path

from xstate.machine import Machine


def get_machine_path() -> Path:
    default = Path(__file__).resolve().parent.parent / "flows" / "conversation_machine.json"
    path = os.environ.get("XSTATE_MACHINE_PATH", "").strip()
    if path:
        return Path(path).resolve()
    return default


def load_machine(path: Path | None = None) -> dict:
    if path is None:
        path = get_machine_path()
    raw = path.read_text(encoding="utf-8")
    config = json.loads(raw)
    if "initial" not in config or "states" not in config:
        raise ValueError("Machine must have 'initial' and 'states'")
    if config["initial"] not in config["states"]:
        raise ValueError(f"initial state '{config['initial']}' must be a state")
    for name, node in config["states"].items():
        for event, target in (node.get("on") or {}).items():
            if target not in config["states"]:
                raise ValueError(
                    f"State '{name}' event '{event}' targets unknown state '{target}'"
                )
    return config


def _machine_instance(config: dict) -> Machine:
    """Return a Machine instance for this config.

    Cached per dict identity; the cache holds the config itself so its id is
    never reused while the entry lives.
    """
    cache: dict[int, tuple[dict, Machine]] = getattr(_machine_instance, "_cache", {})
    entry = cache.get(id(config))
    if entry is None or entry[0] is not config:
        entry = (config, Machine(config))
        cache[id(config)] = entry
        _machine_instance._cache = cache
    return entry[1]


def transition(machine: dict, state_value: str, event: str) -> str | None:
    """
    Return next state value for (state_value, event), or None if no transition.
    Uses xstate-python for full XState semantics.
    """
    try:
        instance = _machine_instance(machine)
        state = instance.state_from(state_value)
        next_state = instance.transition(state, event)
        if next_state.value == state_value:
            return None
        return next_state.value
    except (ValueError, KeyError):
        return None


# Module-level cache for config dict (for get_machine)
_machine_cache: dict | None = None


def get_machine(cache: bool = True) -> dict:
    global _machine_cache
    if cache and _machine_cache is not None:
        return _machine_cache
    _machine_cache = load_machine()
    return _machine_cache
