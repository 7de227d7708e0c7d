"""
Exceptions raised while configuring and resolving bindings.
"""


class BinderyError(Exception):
    """
    Base class for every error raised by bindery.
    """


class ResolutionError(BinderyError):
    """
    Raised when an object graph cannot be built.
    """


class UnknownTypeError(ResolutionError):
    """
    Raised when a target type, reference or import string does not name
    anything the container can build.
    """

    def __init__(self, target, reason: str = None):
        self.target = target
        message = f"Unable to locate a buildable type for '{describe(target)}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnknownMethodError(ResolutionError):
    """
    Raised when a configured method call targets a method the built object
    does not have.
    """

    def __init__(self, instance, method: str):
        self.instance = instance
        self.method = method
        super().__init__(
            f"'{type(instance).__name__}' has no callable method '{method}'"
        )


class CircularDependencyError(ResolutionError):
    """
    Raised when resolution re-enters a binding or definition that is
    already being built further up the stack.

    Attributes:
        chain: The resolution path, ending with the re-entered key.
    """

    def __init__(self, chain: list):
        self.chain = list(chain)
        super().__init__(
            "Circular dependency detected: " + " -> ".join(describe(k) for k in self.chain)
        )


class DefinitionFrozenError(BinderyError):
    """
    Raised when a definition is reconfigured after it has been invoked.
    """


def describe(key) -> str:
    """Readable name for a binding key, class or definition."""
    if isinstance(key, type):
        return key.__qualname__
    target = getattr(key, 'target', None)
    if target is not None:
        return f"Definition({describe(target)})"
    return str(key)
