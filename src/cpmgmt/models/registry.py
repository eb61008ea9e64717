"""Registry mapping the "type" discriminator to entity classes."""

from .base import GenericObject, ObjectSummary


class TypeRegistry:
    """Explicit discriminator -> class table used by the object converter."""

    def __init__(self) -> None:
        self._types: dict[str, type[ObjectSummary]] = {}

    def register(self, cls: type[ObjectSummary]) -> type[ObjectSummary]:
        """Register a class under its type_name (usable as a decorator)."""
        if not cls.type_name:
            raise ValueError(f"{cls.__name__} has no type_name")
        self._types[cls.type_name] = cls
        return cls

    def resolve(
        self,
        type_name: str | None,
        declared_type: type[ObjectSummary] | None = None,
    ) -> type[ObjectSummary]:
        """
        Pick the class for a discriminator.

        Args:
            type_name: Value of the "type" field, possibly missing or malformed.
            declared_type: Static type expected at this position, if any.

        Returns:
            The registered class, else declared_type, else GenericObject.
        """
        if isinstance(type_name, str) and type_name in self._types:
            return self._types[type_name]
        return declared_type or GenericObject

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._types

    def types(self) -> dict[str, type[ObjectSummary]]:
        return dict(self._types)


default_registry = TypeRegistry()


def register_type(cls: type[ObjectSummary]) -> type[ObjectSummary]:
    """Class decorator registering an entity in the default registry."""
    return default_registry.register(cls)
