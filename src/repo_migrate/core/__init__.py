"""Core migration types: references, changes and transformations."""

from .change import Change, VisitResult, parse_labels
from ..exceptions import (
    CannotResolveReferenceException,
    CheckoutHookException,
    PushRejectedException,
    RepoException,
    ValidationException,
)
from .glob import Glob
from .reference import Reference
from .transform import (
    Move,
    Replace,
    Transformation,
    TransformationPipeline,
    TransformWork,
    core_transform,
)

__all__ = [
    'Change',
    'VisitResult',
    'parse_labels',
    'CannotResolveReferenceException',
    'CheckoutHookException',
    'PushRejectedException',
    'RepoException',
    'ValidationException',
    'Glob',
    'Reference',
    'Move',
    'Replace',
    'Transformation',
    'TransformationPipeline',
    'TransformWork',
    'core_transform',
]
