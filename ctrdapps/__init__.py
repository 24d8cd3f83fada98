"""Query compose App containers on a containerd host through nerdctl."""

__version__ = "0.1.0"
__all__ = ["client"]