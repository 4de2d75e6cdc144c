import inspect
import json
from types import UnionType
from typing import Any, Union, get_args, get_origin, get_type_hints


def _is_model(tp: Any) -> bool:
    return isinstance(tp, type) and hasattr(tp, "from_dict")


class TypeConverter:
    @staticmethod
    def convert_value(value: Any, expected_type: Any) -> Any:
        if expected_type is None or value is None:
            return value
        origin = get_origin(expected_type)

        # Unions such as `dict | Query | None` prefer the model type
        if origin in (Union, UnionType):
            candidates = [
                t for t in get_args(expected_type) if t is not type(None)
            ]
            for candidate in candidates:
                if (
                    get_origin(candidate) is None
                    and isinstance(candidate, type)
                    and candidate is not dict
                    and isinstance(value, candidate)
                ):
                    return value
            for candidate in candidates:
                if _is_model(candidate):
                    return TypeConverter.convert_value(value, candidate)
            if len(candidates) == 1:
                return TypeConverter.convert_value(value, candidates[0])
            return value

        if isinstance(value, list) and origin in (list, tuple):
            args = get_args(expected_type)
            elem_type = args[0] if args else Any
            return [TypeConverter.convert_value(v, elem_type) for v in value]

        if isinstance(value, dict) and origin is dict:
            args = get_args(expected_type)
            key_type, val_type = args if args else (Any, Any)
            return {
                TypeConverter.convert_value(
                    k, key_type
                ): TypeConverter.convert_value(v, val_type)
                for k, v in value.items()
            }

        if _is_model(expected_type) and isinstance(value, (dict, str)):
            if isinstance(value, str):
                value = json.loads(value)
            return expected_type.from_dict(value)

        try:
            if expected_type is int and isinstance(value, (str, float)):
                return int(value)
            if expected_type is float and isinstance(value, (str, int)):
                return float(value)
            if expected_type is str and isinstance(value, (int, float)):
                return str(value)
            if expected_type is bool and isinstance(value, str):
                return value.lower() in ("1", "true", "yes", "on")
        except (ValueError, TypeError):
            pass

        return value

    @staticmethod
    def convert_args(method: Any, args: dict) -> dict:
        sig = inspect.signature(method)
        hints = get_type_hints(method)
        converted_args: dict = {}
        for param_name in sig.parameters:
            if param_name in args:
                converted_args[param_name] = TypeConverter.convert_value(
                    args[param_name], hints.get(param_name, None)
                )
        return args | converted_args
