from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ContainerInterface(Protocol):
    """Minimal container capability: lookup by identifier.

    Depend on this instead of ``Container`` where only ``has``/``get`` are needed,
    so any conforming container can be passed in.
    """

    def has(self, id: Any) -> bool: ...  # noqa: A002

    def get(self, id: Any) -> Any: ...  # noqa: A002
