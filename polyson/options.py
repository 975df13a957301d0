"""
Serializer configuration.

SerializerOptions controls how the JsonSerializer maps model fields to JSON
property names. Converters, including the polymorphism converter, read the
same options so discriminator lookups follow the document-wide naming rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, get_origin

from pydantic import BaseModel
from pydantic.alias_generators import to_camel, to_pascal, to_snake

if TYPE_CHECKING:
    from polyson.serializer import JsonConverter


NamingPolicy = Callable[[str], str]

# Named naming policies accepted by SerializerOptions.naming_policy
NAMING_POLICIES: dict[str, NamingPolicy] = {
    "camel": to_camel,
    "pascal": to_pascal,
    "snake": to_snake,
}


@dataclass
class SerializerOptions:
    """
    Document-level configuration of a JsonSerializer.

    Attributes:
        property_name_case_insensitive: Match JSON property names to fields
            ignoring case when reading.
        naming_policy: Converts field names to JSON property names. Either
            None (field names are used as-is), one of the names in
            NAMING_POLICIES, or any callable. Fields with an explicit alias
            always use the alias.
        write_indented: Indent written JSON by two spaces.
        converters: Converters consulted, in order, before the standard
            field mapping for every declared type.

    Example:
        >>> options = SerializerOptions(
        ...     property_name_case_insensitive=True,
        ...     naming_policy="pascal",
        ... )
        >>> add_polymorphism(options)
        >>> JsonSerializer(options).deserialize(text, list[Shape])
    """

    property_name_case_insensitive: bool = False
    naming_policy: str | NamingPolicy | None = None
    write_indented: bool = False
    converters: list[JsonConverter] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.naming_policy, str) and self.naming_policy not in NAMING_POLICIES:
            raise ValueError(
                f"Unknown naming policy {self.naming_policy!r}. "
                f"Available policies: {sorted(NAMING_POLICIES)}"
            )

    def convert_name(self, name: str) -> str:
        """Apply the naming policy to a field name."""
        policy = self.naming_policy
        if policy is None:
            return name
        if isinstance(policy, str):
            policy = NAMING_POLICIES[policy]
        return policy(name)

    def get_json_name(self, owner: Any, name: str) -> str:
        """
        Return the JSON property name for a member of a type.

        Pydantic model fields use their alias when one is set and the naming
        policy otherwise. Names that are not model fields are returned as-is.
        """
        if get_origin(owner) is None and isinstance(owner, type) and issubclass(owner, BaseModel):
            model_field = owner.model_fields.get(name)
            if model_field is not None:
                if model_field.alias:
                    return model_field.alias
                return self.convert_name(name)
        return name

    def name_key(self, name: str) -> str:
        """Return the lookup key of a property name under the case policy."""
        return name.casefold() if self.property_name_case_insensitive else name
