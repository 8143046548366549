"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for the local persistence layer.
These protocols enable dependency injection for storage operations,
making the client state testable without touching the file system.

Protocols defined:
- KeyValueStorage: Interface for named slots holding serialized values
"""

from typing import Protocol, Optional


class KeyValueStorage(Protocol):
    """Protocol defining the interface for named-slot storage.

    Implementations should provide methods for:
    - Reading the serialized value held in a slot
    - Overwriting a slot with a new serialized value
    - Removing a slot entirely

    Writes are whole-value overwrites; there are no partial updates.
    """

    def get_item(self, key: str) -> Optional[str]:
        """Read a slot.

        Args:
            key: The slot name.

        Returns:
            The stored string, or None if the slot is empty.
        """
        ...

    def set_item(self, key: str, value: str) -> None:
        """Overwrite a slot.

        Args:
            key: The slot name.
            value: The serialized value to store.
        """
        ...

    def remove_item(self, key: str) -> None:
        """Clear a slot. Clearing an empty slot is not an error.

        Args:
            key: The slot name.
        """
        ...
