import inspect
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from ._operation import Operation

T = TypeVar("T", bound=Callable[..., Any])


def _bind_operation(func: Callable, name: str, args, kwargs) -> Operation:
    bound_args = inspect.signature(func).bind(*args, **kwargs)
    bound_args.apply_defaults()
    arguments = dict(bound_args.arguments)
    arguments.pop("self", None)
    return Operation.normalize(name=name, args=arguments)


def operation(**config: Any) -> Callable[[T], T]:
    """Route a component method to its bound provider.

    The decorated method body is only used when the component
    has no provider bound.
    """

    def decorator(func: T) -> T:
        setattr(func, "__operation__", True)
        setattr(func, "__config__", config)
        if not inspect.iscoroutinefunction(func):

            @wraps(func)
            def wrapper(*args, **kwargs) -> Any:
                self = args[0]
                context = kwargs.pop("__context__", None)
                if not hasattr(self, "__provider__"):
                    return func(*args, **kwargs)
                operation = _bind_operation(
                    func, func.__name__, args, kwargs
                )
                return self.__run__(operation, context)

            return cast(T, wrapper)

        @wraps(func)
        async def awrapper(*args, **kwargs) -> Any:
            self = args[0]
            context = kwargs.pop("__context__", None)
            if not hasattr(self, "__provider__"):
                return await func(*args, **kwargs)
            operation = _bind_operation(
                func, func.__name__[1:], args, kwargs
            )
            return await self.__arun__(operation, context)

        return cast(T, awrapper)

    return decorator
