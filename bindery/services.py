"""
bindery – binding store and resolver

Provides:
- Bindings from classes, import strings or arbitrary keys to definitions,
  factories or pre-built instances
- Transient and Singleton lifetimes
- Constructor autowiring from type annotations
- Circular dependency detection
"""

from contextlib import contextmanager
from threading import RLock, local
from typing import Any, Optional
import inspect
import logging

from .definition import Definition
from .exceptions import (
    CircularDependencyError,
    ResolutionError,
    UnknownTypeError,
    describe,
)
from .reflection import get_constructor_hints, get_signature, is_concrete, load_type

logger = logging.getLogger(__name__)


class Lifetime:
    """
    Supported lifetimes for bindings.
    """
    Singleton = 'singleton'
    Transient = 'transient'


class Binding:
    """
    Holds what a single key is bound to and how long its result lives.

    Attributes:
        name:       The key the binding is registered under.
        concrete:   A Definition, a factory callable(container), or None for
                    instance bindings.
        lifetime:   Lifetime.Singleton or Lifetime.Transient.
        instance:   Cached or pre-built instance.
    """
    __slots__ = ("name", "concrete", "lifetime", "instance", "has_instance")

    def __init__(
        self,
        name: Any,
        concrete: Any = None,
        lifetime: str = Lifetime.Transient,
        instance: Any = None,
        has_instance: bool = False
    ):
        self.name = name
        self.concrete = concrete
        self.lifetime = lifetime
        self.instance = instance
        self.has_instance = has_instance

    @property
    def raw(self) -> Any:
        """The stored recipe, or the instance for instance bindings."""
        return self.instance if self.concrete is None else self.concrete

    def activate(self, container: 'Container') -> Any:
        """
        Produce a new object from the definition or factory.
        """
        if isinstance(self.concrete, Definition):
            return self.concrete()
        return self.concrete(container)


class Container:
    """
    Maps keys to recipes and resolves them into fully wired objects.

    Key methods:
      - bind(name, concrete)   → register a class, definition, factory or instance
      - singleton(name, ...)   → bind with a cached shared instance
      - resolve(name)          → build whatever `name` is bound to
      - build(cls, args)       → instantiate a class directly
    """

    __slots__ = ('_bindings', '_autowire', '_lock', '_local', '__weakref__')

    def __init__(self, autowire: bool = True):
        self._bindings: dict[Any, Binding] = {}
        self._autowire = autowire
        self._lock = RLock()
        self._local = local()

    def __contains__(self, name: Any) -> bool:
        return self.bound(name)

    def bind(
        self,
        name: Any,
        concrete: Any = None,
        lifetime: str = Lifetime.Transient
    ) -> Any:
        """
        Bind `name` to `concrete`.

        `concrete` may be a class or import string (wrapped in a Definition),
        an existing Definition, a factory callable taking the container, or
        any other object which is then stored as an instance. When omitted,
        `name` is bound to itself.

        Returns:
            The Definition for class bindings so it can be configured
            fluently, otherwise the stored concrete.
        """
        if concrete is None:
            concrete = name

        if isinstance(concrete, Definition):
            binding = Binding(name, concrete, lifetime)
        elif isinstance(concrete, (type, str)):
            concrete = Definition(self, concrete)
            binding = Binding(name, concrete, lifetime)
        elif callable(concrete):
            binding = Binding(name, concrete, lifetime)
        else:
            binding = Binding(name, instance=concrete, lifetime=Lifetime.Singleton, has_instance=True)

        logger.debug(f"Binding '{describe(name)}' ({binding.lifetime})")
        self._bindings[name] = binding
        return concrete

    def singleton(self, name: Any, concrete: Any = None) -> Any:
        """Bind `name` so that it resolves to one shared instance."""
        return self.bind(name, concrete, lifetime=Lifetime.Singleton)

    def instance(self, name: Any, instance: Any) -> Any:
        """Register a pre-built object under `name`."""
        self._bindings[name] = Binding(
            name, instance=instance, lifetime=Lifetime.Singleton, has_instance=True
        )
        return instance

    def unbind(self, name: Any) -> None:
        self._bindings.pop(name, None)

    def bound(self, name: Any) -> bool:
        """Is `name` registered?"""
        return name in self._bindings

    def get_raw(self, name: Any) -> Optional[Any]:
        """
        The unresolved entry for `name` (a Definition, factory or instance),
        or None when nothing is bound. Never builds anything.
        """
        binding = self._bindings.get(name)
        return binding.raw if binding is not None else None

    def resolve(self, name: Any) -> Any:
        """
        Fully build whatever is bound to `name`.

        Unbound classes and import strings are built directly.

        Raises:
            UnknownTypeError: `name` is neither bound nor buildable.
            CircularDependencyError: `name` is already being resolved.
        """
        binding = self._bindings.get(name)

        with self.resolving(name):
            if binding is None:
                if isinstance(name, (type, str)):
                    return self.build(name)
                raise UnknownTypeError(name, "nothing is bound under this name")

            if binding.has_instance:
                return binding.instance

            if binding.lifetime == Lifetime.Singleton:
                with self._lock:
                    if binding.has_instance:
                        return binding.instance

                    instance = binding.activate(self)
                    binding.instance = instance
                    binding.has_instance = True
                    return instance

            return binding.activate(self)

    def build(self, target: Any, args: Optional[list] = None) -> Any:
        """
        Instantiate `target` directly, bypassing the bindings for the class itself.

        With `args`, the class is called with them positionally. Without,
        constructor parameters are autowired from their annotations when
        autowiring is enabled.
        """
        cls = load_type(target)
        if not is_concrete(cls):
            raise UnknownTypeError(cls, "abstract types cannot be instantiated")

        if args:
            logger.debug(f"Building {cls.__name__} with {len(args)} argument(s)")
            return cls(*args)

        if not self._autowire:
            return cls()

        positional, keywords = self._get_constructor_arguments(cls)
        logger.debug(f"Building {cls.__name__} with {len(positional) + len(keywords)} autowired argument(s)")
        return cls(*positional, **keywords)

    @contextmanager
    def resolving(self, key: Any):
        """
        Mark `key` as being resolved for the duration of the block.
        Re-entering a key that is already on the stack raises
        CircularDependencyError.
        """
        stack = getattr(self._local, 'stack', None)
        if stack is None:
            stack = self._local.stack = []

        if key in stack:
            chain = stack[stack.index(key):] + [key]
            raise CircularDependencyError(chain)

        stack.append(key)
        try:
            yield
        finally:
            stack.pop()

    def _get_constructor_arguments(self, cls: type) -> tuple[list, dict]:
        """
        Inspect the constructor signature and resolve every parameter that
        has no default value.
        """
        try:
            params = get_signature(cls).parameters
        except (TypeError, ValueError):
            # builtins without an introspectable signature
            return [], {}

        hints = get_constructor_hints(cls)
        positional, keywords = [], {}

        for name, param in params.items():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if param.default is not inspect.Parameter.empty:
                continue

            annotation = hints.get(name, param.annotation)
            if annotation is inspect.Parameter.empty:
                raise ResolutionError(
                    f"Missing type annotation for parameter '{name}' in {cls.__name__}"
                )
            if not self._is_injectable(annotation):
                raise ResolutionError(
                    f"Failed to resolve dependency '{describe(annotation)}' "
                    f"for parameter '{name}' while instantiating '{cls.__name__}'"
                )

            value = self.resolve(annotation)
            if param.kind == param.POSITIONAL_ONLY:
                positional.append(value)
            else:
                keywords[name] = value

        return positional, keywords

    def _is_injectable(self, annotation: Any) -> bool:
        """
        Bound keys always are. Unbound classes are when concrete, except
        builtins such as int or str, which are values rather than services.
        """
        if self.bound(annotation):
            return True
        return is_concrete(annotation) and annotation.__module__ != 'builtins'

