"""
Runtime type introspection used while wiring objects: loading classes from
import strings, reading constructor signatures and walking class lineage.
"""

from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any
import inspect
import logging
import pkgutil
import typing

from .exceptions import UnknownTypeError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def get_signature(fn):
    return inspect.signature(fn)


class ContainerAware(ABC):
    """
    Capability marker for objects that want the owning container injected
    after construction. The container calls `set_container` before any
    other configured method.
    """

    @abstractmethod
    def set_container(self, container) -> None:
        ...


class ContainerAwareMixin(ContainerAware):
    """Stores the injected container as `self.container`."""

    container = None

    def set_container(self, container) -> None:
        self.container = container


def load_type(target: Any) -> type:
    """
    Return the class named by `target`.

    `target` is either a class or an import string in the form
    'package.module:Class' or 'package.module.Class'.
    """
    if isinstance(target, type):
        return target
    if not isinstance(target, str):
        raise UnknownTypeError(target, "expected a class or an import string")

    try:
        resolved = pkgutil.resolve_name(target)
    except (ImportError, AttributeError, ValueError) as e:
        raise UnknownTypeError(target, str(e)) from e

    if not isinstance(resolved, type):
        raise UnknownTypeError(target, f"resolved to a {type(resolved).__name__}, not a class")
    return resolved


def is_concrete(cls: Any) -> bool:
    """True for classes that can be instantiated directly."""
    if not isinstance(cls, type):
        return False
    if inspect.isabstract(cls):
        return False
    return not getattr(cls, '_is_protocol', False)


def type_lineage(cls: type) -> list[type]:
    """
    Ancestors of `cls` in inheritance-merge order: interfaces first, then the
    primary parent chain from the immediate parent up to the root.

    The primary chain follows the first base class at every level. Every
    other class in the MRO counts as an interface and keeps its MRO position.
    `object` is never included.
    """
    parents = []
    current = cls
    while True:
        bases = [b for b in current.__bases__ if b is not object]
        if not bases:
            break
        current = bases[0]
        if current in parents:
            break
        parents.append(current)

    interfaces = [
        base for base in cls.__mro__[1:]
        if base is not object and base not in parents
    ]
    return interfaces + parents


def get_constructor_hints(cls: type) -> dict:
    """
    Evaluated annotations of `cls.__init__`, so string annotations and
    postponed evaluation both resolve to real types. Returns an empty dict
    when the hints cannot be evaluated.
    """
    try:
        return typing.get_type_hints(cls.__init__)
    except (NameError, TypeError) as e:
        logger.debug(f"Could not evaluate constructor hints for {cls.__name__}: {e}")
        return {}
