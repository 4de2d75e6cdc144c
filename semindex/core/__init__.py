from ._component import Component
from ._decorators import operation
from ._loader import Loader
from ._log_helper import debug, info, warn
from ._operation import Operation
from ._provider import Provider
from ._response import Context, Response
from ._type_converter import TypeConverter
from .data_model import DataModel, FrozenDataModel

__all__ = [
    "Component",
    "Context",
    "DataModel",
    "FrozenDataModel",
    "Loader",
    "Operation",
    "Provider",
    "Response",
    "TypeConverter",
    "debug",
    "info",
    "operation",
    "warn",
]
