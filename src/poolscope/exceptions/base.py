from typing import Any


class PoolscopeError(Exception):
    """
    Base exception used as the parent class for all exceptions raised by this package.

    Calling code should catch `PoolscopeError` and derived classes separately before general
    exceptions, e.g.:

    ```
    try:
        analyzer.get_tick_liquidity_distribution(pool)
    except SpecificPoolscopeError:
        ... # handle a specific exception
    except PoolscopeError:
        ... # handle non-specific poolscope exception
    except Exception:
        ... # handle exceptions raised by 3rd party dependencies or Python built-ins
    ```

    An optional string-formatted message may be attached to the exception and retrieved by accessing
    the `.message` attribute. The `.kind` attribute is a stable, machine-readable identifier for the
    error category.
    """

    kind: str = "error"
    message: str | None = None

    def __init__(self, message: str | None = None) -> None:
        if message:
            self.message = message
            super().__init__(message)

    def as_response(self) -> dict[str, Any]:
        """
        A structured representation suitable for a transport layer.
        """

        return {
            "kind": self.kind,
            "message": self.message if self.message is not None else self.__class__.__name__,
        }


class PoolscopeValueError(PoolscopeError):
    kind = "invalid_value"


class PoolscopeTypeError(PoolscopeError):
    kind = "invalid_type"
