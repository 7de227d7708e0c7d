"""
Definition – a deferred, configurable recipe for producing one object.

A definition holds a target class, positional constructor arguments and
post-construction method calls. Invoking it merges configuration declared
for the target's ancestors, resolves dependency references through the
owning container, builds the object and runs the configured methods.
"""

from typing import Any, Iterable, Mapping, Optional
import logging
import weakref

from .exceptions import DefinitionFrozenError, UnknownMethodError, UnknownTypeError
from .reflection import ContainerAware, is_concrete, load_type, type_lineage

logger = logging.getLogger(__name__)


class Reference:
    """
    Marks an argument as a dependency: the container resolves `name`
    (a class, an import string or any bound key) when the definition is invoked.
    """

    __slots__ = ('name',)

    def __init__(self, name: Any):
        self.name = name

    def __eq__(self, other):
        return isinstance(other, Reference) and self.name == other.name

    def __hash__(self):
        return hash((Reference, self.name))

    def __repr__(self):
        return f"Reference({self.name!r})"


class Literal:
    """
    Marks an argument as a plain value that is never resolved, e.g. to pass
    a class object itself rather than an instance of it.
    """

    __slots__ = ('value',)

    def __init__(self, value: Any):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, Literal) and self.value == other.value

    def __hash__(self):
        return hash((Literal, self.value))

    def __repr__(self):
        return f"Literal({self.value!r})"


def resolve_argument(container, value: Any) -> Any:
    """
    Produce the value to pass for one configured argument.

    - `Reference` is resolved through the container.
    - `Literal` is unwrapped and passed as is.
    - A bare class is resolved when it is bound or concrete; an abstract,
      unbound class is passed through.
    - Anything else is passed through unchanged. This includes strings, even
      ones that are bound keys: string keys must be wrapped in `Reference`.
    """
    if isinstance(value, Reference):
        return container.resolve(value.name)
    if isinstance(value, Literal):
        return value.value
    if isinstance(value, type) and (container.bound(value) or is_concrete(value)):
        return container.resolve(value)
    return value


class Definition:
    """
    Recipe for building `target` with positional arguments and method calls.

    Configuration is fluent and only allowed until the first successful
    invocation:

        definition = Definition(container, Mailer)
        definition.add_arg('smtp.example.com').with_method('set_logger', [Logger])
        mailer = definition()

    Attributes:
        target:      The class to build, or an import string naming it.
        inheritable: When False, configuration declared for the target's
                     ancestors is not merged into this definition, and this
                     definition is not merged into descendants either.
    """

    __slots__ = (
        '_container_ref', '_target', '_arguments', '_methods', '_inherit',
        '_merged_arguments', '_merged_methods', '_invoked', '__weakref__'
    )

    def __init__(self, container, target: Any):
        try:
            self._container_ref = weakref.ref(container)
        except TypeError:
            self._container_ref = lambda: container
        self._target = target
        # own configuration; inherited entries live in the merged copies
        self._arguments: list = []
        self._methods: dict[str, list] = {}
        self._inherit = True
        self._merged_arguments: Optional[list] = None
        self._merged_methods: Optional[dict[str, list]] = None
        self._invoked = False

    def __repr__(self):
        return f"Definition({self._target!r})"

    @property
    def target(self) -> Any:
        return self._target

    @property
    def container(self):
        container = self._container_ref()
        if container is None:
            raise ReferenceError(f"The container owning {self!r} no longer exists")
        return container

    @property
    def invoked(self) -> bool:
        """True once an invocation has completed successfully."""
        return self._invoked

    def __call__(self) -> Any:
        """
        Build the target and run its configured methods.

        A failed invocation leaves the definition configurable and discards
        the merged configuration, so it can be fixed and invoked again.

        Returns:
            The fully constructed and wired object.

        Raises:
            UnknownTypeError: The target or a referenced type cannot be loaded.
            UnknownMethodError: A configured method does not exist on the object.
            CircularDependencyError: Building re-entered this definition.
        """
        container = self.container

        with container.resolving(self):
            try:
                instance = self._build(container)
            except Exception:
                if not self._invoked:
                    self._merged_arguments = None
                    self._merged_methods = None
                raise

        self._invoked = True
        return instance

    def inherit(self) -> bool:
        """Should this definition take part in inheritance merges?"""
        return self._inherit

    def dont_inherit(self) -> 'Definition':
        self._ensure_configurable()
        self._inherit = False
        return self

    def get_args(self) -> list:
        """Constructor arguments, including inherited ones once merged."""
        if self._merged_arguments is not None:
            return list(self._merged_arguments)
        return list(self._arguments)

    def get_methods(self) -> dict[str, list]:
        methods = self._merged_methods if self._merged_methods is not None else self._methods
        return {name: list(args) for name, args in methods.items()}

    def add_arg(self, arg: Any) -> 'Definition':
        """Append one positional constructor argument."""
        self._ensure_configurable()
        self._arguments.append(arg)
        return self

    def add_args(self, args: Iterable[Any]) -> 'Definition':
        self._ensure_configurable()
        self._arguments.extend(args)
        return self

    def clean_args(self) -> 'Definition':
        """Remove every configured constructor argument."""
        self._ensure_configurable()
        self._arguments = []
        return self

    def with_method(self, method: str, args: Optional[Iterable[Any]] = None) -> 'Definition':
        """
        Call `method` with `args` on the built object. Registering the same
        method again replaces its arguments and keeps its original position.
        """
        self._ensure_configurable()
        self._methods[method] = list(args or [])
        return self

    def with_methods(self, methods: Mapping[str, Iterable[Any]]) -> 'Definition':
        self._ensure_configurable()
        for method, args in methods.items():
            self._methods[method] = list(args or [])
        return self

    def _ensure_configurable(self) -> None:
        if self._invoked:
            raise DefinitionFrozenError(
                f"{self!r} has already been invoked and can no longer be configured"
            )

    def _build(self, container) -> Any:
        self._merge_inherited_dependencies()

        if not self._merged_arguments:
            instance = container.build(self._target)
        else:
            arguments = [resolve_argument(container, arg) for arg in self._merged_arguments]
            instance = container.build(self._target, arguments)

        methods = dict(self._merged_methods)
        if isinstance(instance, ContainerAware):
            # injected call must be the last registered so it runs first
            methods.pop('set_container', None)
            methods['set_container'] = [Literal(container)]

        return self._call_methods(instance, methods)

    def _call_methods(self, instance: Any, methods: dict[str, list]) -> Any:
        container = self.container

        # Most recently registered call runs first
        for method, args in reversed(list(methods.items())):
            fn = getattr(instance, method, None)
            if fn is None or not callable(fn):
                raise UnknownMethodError(instance, method)

            arguments = [resolve_argument(container, arg) for arg in args]
            logger.debug(f"Calling {type(instance).__name__}.{method} with {len(arguments)} argument(s)")
            fn(*arguments)

        return instance

    def _merge_inherited_dependencies(self) -> None:
        """
        Combine this definition's own configuration with the own configuration
        of every definition bound to the target's interfaces and parent
        classes. Runs at most once per definition.

        Only an ancestor's own entries are copied; the lineage already lists
        every ancestor, so what an ancestor inherited is never passed on twice.

        On a method-name collision the last merge wins: later lineage entries
        overwrite earlier ones, and inherited entries overwrite this
        definition's own entry.
        """
        if self._merged_arguments is not None:
            return

        arguments = list(self._arguments)
        methods = dict(self._methods)

        if self._inherit:
            container = self.container
            for ancestor in type_lineage(load_type(self._target)):
                raw = container.get_raw(ancestor)
                if isinstance(raw, Definition) and raw is not self and raw.inherit():
                    logger.debug(f"Merging dependencies of {ancestor.__name__} into {self!r}")
                    arguments.extend(raw._arguments)
                    methods.update({name: list(args) for name, args in raw._methods.items()})

        self._merged_arguments = arguments
        self._merged_methods = methods
