"""
Typed error taxonomy for the fatigue engine.

Every failure the engine can produce is one of these classes, so callers
can tell a bad configuration from bad sensor data or a numerical domain
problem, and can localize it through ``context`` (load case, node,
expression name, ...).
"""
from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base class for all engine errors.

    Attributes:
        message: Human-readable description
        context: Localizing information (e.g. ``{'load_case': 'lc1'}``)
    """

    kind = "engine"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def with_context(self, **context: Any) -> "EngineError":
        """Attach additional context (existing keys are kept) and return self."""
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "context": dict(self.context)}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({ctx})"


class ConfigurationError(EngineError, ValueError):
    """Malformed or missing configuration, detected before computation."""

    kind = "configuration"


class DataError(EngineError, ValueError):
    """Mismatch between declared sensors and the actual series."""

    kind = "data"


class DomainError(EngineError, ArithmeticError):
    """Numerical domain violation (non-positive stress, non-finite value)."""

    kind = "domain"


class DegenerateBasisError(ConfigurationError, DomainError):
    """Interpolation points do not span the load space."""

    kind = "degenerate_basis"


class ParseError(EngineError, ValueError):
    """Malformed expression text."""

    kind = "parse"


class UnresolvedReferenceError(EngineError, LookupError):
    """Expression references a name that is not available yet.

    Attributes:
        expression: Name of the expression that failed
        name: The unresolved reference
    """

    kind = "unresolved_reference"

    def __init__(self, expression: str, name: str, message: Optional[str] = None):
        super().__init__(
            message or f"Expression '{expression}' references '{name}' "
                       f"before it is defined",
            context={"expression": expression, "reference": name},
        )
        self.expression = expression
        self.name = name
