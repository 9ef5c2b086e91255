"""Resolution pipeline: classify, fetch from cache, compile, verify, publish, lock."""

from stemforge.core.classifier import classify, find_build_candidates
from stemforge.core.compilation_session import CompilationSession, InvalidTransitionError
from stemforge.core.errors import (
    ConfigurationError,
    ErrorKind,
    IntegrityError,
    ResolutionError,
    TeardownError,
    TransportError,
)
from stemforge.core.resolver import ResolutionReport, Resolver

__all__ = [
    "classify",
    "find_build_candidates",
    "CompilationSession",
    "InvalidTransitionError",
    "ErrorKind",
    "ResolutionError",
    "ConfigurationError",
    "TransportError",
    "IntegrityError",
    "TeardownError",
    "Resolver",
    "ResolutionReport",
]
