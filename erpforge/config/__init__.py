"""Session configuration: schema and YAML helpers."""

from .schema import SessionConfig, TabConfig
from .yaml_utils import UniqueKeyLoader, dump_yaml, load_yaml

__all__ = ["SessionConfig", "TabConfig", "UniqueKeyLoader", "dump_yaml", "load_yaml"]
