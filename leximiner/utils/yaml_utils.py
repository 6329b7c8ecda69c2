from pathlib import Path
from typing import Any, Type, Union

import yaml

from ..exceptions import ConfigurationError

# Plain scalars that should stay words in pattern lists: "no", "on", "2020".
_LITERAL_TAGS = {
    "tag:yaml.org,2002:bool",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
    "tag:yaml.org,2002:timestamp",
}


class UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects repeated mapping keys instead of keeping the last one."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise ConfigurationError(
                    f"Duplicate key {key!r} at line {key_node.start_mark.line + 1}"
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


class PatternLoader(UniqueKeyLoader):
    """UniqueKeyLoader for word lists: unquoted booleans, numbers and dates load as strings."""


PatternLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _LITERAL_TAGS]
    for first, resolvers in UniqueKeyLoader.yaml_implicit_resolvers.items()
}


def load_yaml(path: Union[str, Path], loader: Type[yaml.SafeLoader] = UniqueKeyLoader) -> Any:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.load(f, Loader=loader)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
