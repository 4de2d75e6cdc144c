from __future__ import annotations

import uuid
from typing import Any

from ._loader import Loader
from ._operation import Operation
from ._provider import Provider
from ._response import Context, Response
from .exceptions import NotSupportedError


class Component:
    """Front of a subsystem, dispatching operations to its provider.

    The provider is given with the `__provider__` keyword as an
    instance, a provider type name, or a dict with `type` and
    `parameters`. Names are resolved in the `providers` package next
    to the component module.
    """

    __provider__: Provider

    def __init__(self, **kwargs):
        provider = kwargs.pop("__provider__", None)
        if provider is not None:
            self.__bind__(provider)

    def __bind__(self, provider: Provider | dict | str) -> None:
        if not isinstance(provider, Provider):
            provider = self._load_provider(provider)
        provider.__component__ = self
        self.__provider__ = provider

    def _load_provider(self, spec: dict | str) -> Provider:
        if isinstance(spec, str):
            spec = {"type": spec}
        package = self.__class__.__module__.rpartition(".")[0]
        return Loader.load_provider_instance(
            path=f"{package}.providers.{spec['type']}",
            parameters=dict(spec.get("parameters") or {}),
        )

    def __setup__(self, context: Context | None = None) -> None:
        self.__provider__.__setup__(context=context)

    async def __asetup__(self, context: Context | None = None) -> None:
        await self.__provider__.__asetup__(context=context)

    def __run__(
        self,
        operation: Operation | None = None,
        context: dict | Context | None = None,
        **kwargs,
    ) -> Any:
        context = self._check(operation, context)
        response = self.__provider__.__run__(
            operation=operation, context=context, **kwargs
        )
        return self._attach(response, context)

    async def __arun__(
        self,
        operation: Operation | None = None,
        context: dict | Context | None = None,
        **kwargs,
    ) -> Any:
        context = self._check(operation, context)
        response = await self.__provider__.__arun__(
            operation=operation, context=context, **kwargs
        )
        return self._attach(response, context)

    def _check(
        self,
        operation: Operation | None,
        context: dict | Context | None,
    ) -> Context:
        if not hasattr(self, "__provider__"):
            raise NotSupportedError(f"No provider bound for {operation}")
        if isinstance(context, dict):
            context = Context.from_dict(context)
        if context is None:
            return Context(id=str(uuid.uuid4()))
        if context.id is None:
            return context.copy(update={"id": str(uuid.uuid4())})
        return context

    @staticmethod
    def _attach(response: Any, context: Context) -> Any:
        if isinstance(response, Response) and response.context is None:
            response.context = context
        return response
