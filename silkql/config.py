from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from graphql import GraphQLType

from strawberry.schema.config import StrawberryConfig
from strawberry.schema.name_converter import NameConverter

_logger = logging.getLogger("silkql")

__all__ = ['WeaverConfig', 'StrawberryConfig', 'resolve_name_converter']

PresetType = Callable[[Any], Optional[GraphQLType]]


def resolve_name_converter(strawberry_config: Any) -> Optional[NameConverter]:
    """Return the NameConverter carried by a Strawberry config.

    Accepts both the dataclass flavor (``config.name_converter``) and a plain
    mapping (``{"auto_camel_case": True}``).
    """
    if strawberry_config is None:
        return None
    if isinstance(strawberry_config, Mapping):
        nc = strawberry_config.get('name_converter')
        if nc is None:
            auto = strawberry_config.get('auto_camel_case')
            nc = NameConverter(auto_camel_case=True if auto is None else bool(auto))
        return nc
    nc = getattr(strawberry_config, 'name_converter', None)
    if nc is None:
        auto = getattr(strawberry_config, 'auto_camel_case', None)
        nc = NameConverter(auto_camel_case=True if auto is None else bool(auto))
    return nc


@dataclass
class WeaverConfig:
    """Options of one weave.

    Attributes:
        strawberry_config: Naming config. Its ``name_converter`` renames the
            GraphQL names of fields, arguments and root operations (e.g.
            ``StrawberryConfig(auto_camel_case=True)`` turns ``created_at``
            into ``createdAt``). Names starting with ``_`` are left as-is.
            When omitted, names are emitted unchanged.
        preset_type: Called with each native schema before derivation; a
            non-None GraphQL type replaces the derived one (custom scalars).
        input_suffix: Appended to object names to name their input types.
        schema_description: Description of the woven schema.
    """

    strawberry_config: Optional[Any] = None
    preset_type: Optional[PresetType] = None
    input_suffix: str = "Input"
    schema_description: Optional[str] = None

    def __post_init__(self):
        self._name_converter = resolve_name_converter(self.strawberry_config)

    def convert_name(self, name: str) -> str:
        if self._name_converter is None or not isinstance(name, str) or name.startswith('_'):
            return name
        converted = self._name_converter.apply_naming_config(name)
        if converted != name:
            _logger.debug("silkql: renamed %s -> %s", name, converted)
        return converted

    def preset_for(self, native: Any) -> Optional[GraphQLType]:
        if self.preset_type is None:
            return None
        return self.preset_type(native)
