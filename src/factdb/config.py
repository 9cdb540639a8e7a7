""" Settings for factdb, loaded from toml.

Built-in defaults live in factdb/data/config.toml. A host can layer its own
toml file on top with load_config, which replaces the module level Settings.
"""

import importlib.resources
import types
from typing import Dict, Optional, Any, List, TextIO

import toml # type: ignore

DEFAULT_CONFIG = "config.toml"

def merge(a:Dict[str, Any], b:Dict[str, Any], path:Optional[List[str]]=None) -> Dict[str, Any]:
    """ recursively merges override b into defaults a

    b[key] overrides a[key] if key present in both. raises ValueError if
    b[key] and a[key] are not of the same type, so a typo'd override fails
    at startup rather than when the setting is read.
    """

    if path is None: path = []
    for key in b:
        if key not in a:
            a[key] = b[key]
        elif isinstance(a[key], dict) and isinstance(b[key], dict):
            merge(a[key], b[key], path + [str(key)])
        elif a[key].__class__ == b[key].__class__:
            a[key] = b[key]
        else:
            raise ValueError(f'conflicting type for setting {".".join(path + [str(key)])}: expected {a[key].__class__.__name__} got {b[key].__class__.__name__}')
    return a

def to_namespace(d:Dict[str, Any]) -> types.SimpleNamespace:
    """ Converts a dict of settings recursively to a SimpleNamespace. """
    return types.SimpleNamespace(**{
        k: to_namespace(v) if isinstance(v, dict) else v for k, v in d.items()
    })

def load_config(config_file:Optional[TextIO]=None) -> types.SimpleNamespace:
    config = toml.loads(importlib.resources.read_text("factdb.data", DEFAULT_CONFIG))
    if config_file:
        merge(config, toml.load(config_file))

    global Settings
    Settings = to_namespace(config)

    return Settings

def query_seed() -> Optional[int]:
    """ The configured seed for tie breaking between matching rules, or None
    if queries should be seeded from the OS. """
    seed = Settings.narrative.SEED
    if seed < 0:
        return None
    return seed

Settings = load_config()
