from typing import Any, Callable

from ._async_helper import run_async, run_sync
from ._log_helper import debug
from ._operation import Operation
from ._response import Context
from ._type_converter import TypeConverter
from .exceptions import NotSupportedError


class Provider:
    """Backend implementation bound to a component.

    Operations are resolved by name. A provider that implements only
    the async twin `a<name>` still serves sync calls, and one that
    implements only the sync method serves async calls from a worker
    thread. `__setup__` runs before every dispatched operation and
    must be cheap once the provider is initialized.
    """

    __component__: Any
    __type__: str

    def __init__(self, **kwargs):
        self.__type__ = kwargs.pop("__type__", self.__class__.__module__)
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __setup__(self, context: Context | None = None) -> None:
        pass

    async def __asetup__(self, context: Context | None = None) -> None:
        await run_async(func=self.__setup__, context=context)

    def _resolve(
        self, operation: Operation | None, prefix: str = ""
    ) -> Callable | None:
        if operation is None or not operation.name:
            return None
        func = getattr(self, f"{prefix}{operation.name}", None)
        return func if callable(func) else None

    @staticmethod
    def _bind(func: Callable, operation: Operation) -> dict[str, Any]:
        return TypeConverter.convert_args(func, operation.args or {})

    def __run__(
        self,
        operation: Operation | None = None,
        context: Context | None = None,
        **kwargs,
    ) -> Any:
        func = self._resolve(operation)
        if func is not None:
            self.__setup__(context=context)
            debug("Running %s on %s", operation, self.__type__)
            return func(**self._bind(func, operation))

        afunc = self._resolve(operation, "a")
        if afunc is not None:
            run_sync(self.__asetup__, context=context)
            return run_sync(afunc, **self._bind(afunc, operation))
        raise NotSupportedError(str(operation) if operation else None)

    async def __arun__(
        self,
        operation: Operation | None = None,
        context: Context | None = None,
        **kwargs,
    ) -> Any:
        afunc = self._resolve(operation, "a")
        if afunc is not None:
            await self.__asetup__(context=context)
            return await afunc(**self._bind(afunc, operation))

        return await run_async(
            func=self.__run__,
            operation=operation,
            context=context,
            **kwargs,
        )
