from __future__ import annotations

from typing import Any

from .data_model import DataModel


class Operation(DataModel):
    """Component call routed to a provider."""

    name: str | None = None
    """Operation name, without the `a` prefix of async twins."""

    args: dict[str, Any] | None = None
    """Bound arguments. None values are dropped and extra keyword
    arguments are flattened into the mapping."""

    @staticmethod
    def normalize(
        name: str | None,
        args: dict[str, Any] | None,
    ) -> Operation:
        if args is None:
            return Operation(name=name)
        extra = args.get("kwargs") or {}
        bound = {
            k: v
            for k, v in args.items()
            if k not in ("self", "kwargs") and v is not None
        }
        return Operation(name=name, args=bound | extra)

    def __str__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in (self.args or {}).items())
        return f"{self.name or ''}({args})"
