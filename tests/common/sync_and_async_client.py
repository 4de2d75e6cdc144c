import inspect
from typing import Any


class SyncAndAsyncClient:
    """Calls a component operation sync or async from one test body.

    Subclasses declare one coroutine per operation that forwards its
    keyword arguments to `_execute_method`. The operation name is
    taken from the calling method, prefixed with `a` for async calls.
    """

    client: Any
    async_call: bool

    async def _execute_method(self, **kwargs):
        name = inspect.currentframe().f_back.f_code.co_name
        if self.async_call:
            return await getattr(self.client, f"a{name}")(**kwargs)
        return getattr(self.client, name)(**kwargs)
