"""ceci-hook: dependency-tracked mount/cleanup effects for Python."""

from importlib.metadata import version as _version

__version__ = _version("ceci-hook")

from ceci_hook.effect import Effect, create_effect, same
# textual NOT auto-imported, opt-in only

__all__ = [
    "Effect",
    "create_effect",
    "same",
]
