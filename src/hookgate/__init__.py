"""hookgate - declarative hook policies for agent tool use."""

__version__ = "0.1.0"

from .hooks import Decision, HookRegistry, HookSession, LifecycleEvent

__all__ = ["Decision", "HookRegistry", "HookSession", "LifecycleEvent", "__version__"]
