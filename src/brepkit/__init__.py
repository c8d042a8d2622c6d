"""brepkit: model host, built-in models and developer CLI for the kernel.

Provides logging setup, the built-in models and a host that builds them
once or rebuilds them on change signals.
"""

from .host import Handoff, HostError, ModelError, ModelHost, is_relevant_change
from .models import MODELS, UnknownModel, get_model

__version__ = "0.1.0"
__all__ = [
    "Handoff", "HostError", "ModelError", "ModelHost", "is_relevant_change",
    "MODELS", "UnknownModel", "get_model",
]
