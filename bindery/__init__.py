"""
bindery – deferred definitions and an inversion-of-control container for Python
"""

from .definition import (
    Definition,
    Literal,
    Reference,
    resolve_argument
)
from .exceptions import (
    BinderyError,
    CircularDependencyError,
    DefinitionFrozenError,
    ResolutionError,
    UnknownMethodError,
    UnknownTypeError
)
from .reflection import (
    ContainerAware,
    ContainerAwareMixin
)
from .services import (
    Binding,
    Container,
    Lifetime
)

__all__ = [
    'Binding',
    'Container',
    'ContainerAware',
    'ContainerAwareMixin',
    'Definition',
    'Lifetime',
    'Literal',
    'Reference',
    'resolve_argument',
    'BinderyError',
    'CircularDependencyError',
    'DefinitionFrozenError',
    'ResolutionError',
    'UnknownMethodError',
    'UnknownTypeError'
]
