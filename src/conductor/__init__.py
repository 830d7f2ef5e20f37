"""Plan conductor: dependency-ordered plan execution with capability-routed delegation."""

__version__ = "0.1.0"
