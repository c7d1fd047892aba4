"""YAML utilities with duplicate-key validation."""

from __future__ import annotations

from typing import Any, TextIO, Union

import yaml

from erpforge.errors import ConfigError


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict:
    mapping = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigError(
                f"Duplicate key '{key}' detected in YAML.",
                {"line": key_node.start_mark.line + 1},
            )
        value = loader.construct_object(value_node, deep=deep)
        mapping[key] = value
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def load_yaml(stream: Union[str, TextIO]) -> Any:
    """Load YAML from a string or file-like object with duplicate-key validation.

    Args:
        stream: YAML text or a file-like object containing it.

    Returns:
        Parsed YAML data structure.

    Raises:
        ConfigError: If duplicate keys are detected or the YAML is malformed.
    """
    try:
        return yaml.load(stream, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML: {exc}") from exc


def dump_yaml(data: Any) -> str:
    """Serialize ``data`` to block-style YAML, preserving key order."""
    return yaml.dump(
        data,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )
