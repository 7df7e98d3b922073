"""
Exception hierarchy for the buttonboard host.

Unknown actions are deliberately absent here: they are logged and skipped,
never raised.
"""


class ButtonboardError(Exception):
    """Base exception for buttonboard errors."""

    pass


class ArgumentInvalid(ButtonboardError):
    """A required step argument is missing or cannot be coerced."""

    def __init__(self, key: str, reason: str = "missing or invalid"):
        self.key = key
        self.reason = reason
        super().__init__(f"Argument '{key}': {reason}")


class TransportFailure(ButtonboardError):
    """A command could not be delivered over a non-queuing transport."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Transport to {target} failed: {reason}")


class BindingPredicateFailure(ButtonboardError):
    """The real-vs-simulated predicate of a binding raised."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Mode predicate for binding '{name}' failed")


class OperationCancelled(ButtonboardError):
    """Raised at a suspension point once the cancellation token is set."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class ScenarioNotFound(ButtonboardError):
    """No asset exists for the requested scenario key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Scenario asset '{key}' not found")


class AssetInvalid(ButtonboardError):
    """A scenario asset file could not be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid scenario asset {path}: {reason}")
