from __future__ import annotations

import importlib
import inspect
from typing import Any

from ._log_helper import debug
from ._provider import Provider
from ._type_converter import TypeConverter
from .exceptions import LoadError


class Loader:
    """Imports provider modules by dotted path."""

    @staticmethod
    def load_provider_instance(
        path: str,
        parameters: dict[str, Any] | None = None,
    ) -> Provider:
        cls = Loader.find_subclass(path, Provider)
        args = TypeConverter.convert_args(cls.__init__, parameters or {})
        debug("Loading provider %s", path)
        return cls(**args)

    @staticmethod
    def find_subclass(module_name: str, base: type) -> type:
        """Return the first subclass of `base` defined in the module.

        Raises:
            LoadError: If the module cannot be imported or defines
                no such class.
        """
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise LoadError(f"Cannot import {module_name}") from e
        for _, cls in inspect.getmembers(module, inspect.isclass):
            if cls.__module__ == module_name and issubclass(cls, base):
                return cls
        raise LoadError(f"No {base.__name__} defined in {module_name}")
