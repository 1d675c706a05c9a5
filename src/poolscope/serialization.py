import dataclasses
from typing import Any

import pydantic

from poolscope.exceptions import PoolscopeTypeError
from poolscope.types import InsufficientHistory

# Integers beyond this magnitude lose precision as IEEE-754 doubles, the number type of most JSON
# consumers, and are encoded as decimal strings
MAX_SAFE_JSON_INTEGER = 2**53 - 1


def to_jsonable(value: Any) -> Any:
    """
    Convert a result object into plain JSON-compatible values.
    """

    match value:
        case bool() | None | str() | float():
            return value
        case int():
            return str(value) if abs(value) > MAX_SAFE_JSON_INTEGER else value
        case InsufficientHistory():
            return {
                "kind": value.kind,
                "message": value.message,
                "pool": value.pool,
                "seconds_ago": value.seconds_ago,
            }
        case pydantic.BaseModel():
            return {name: to_jsonable(getattr(value, name)) for name in type(value).model_fields}
        case _ if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return {
                field.name: to_jsonable(getattr(value, field.name))
                for field in dataclasses.fields(value)
            }
        case dict():
            return {str(key): to_jsonable(item) for key, item in value.items()}
        case list() | tuple() | set() | frozenset():
            return [to_jsonable(item) for item in value]
        case _:
            raise PoolscopeTypeError(message=f"Cannot convert {type(value).__name__} to JSON")
