# ruff: noqa: F403, F401
"""Schemas package initialization."""

# Import all schemas to ensure they're registered
from .base import *
from .chat import *
from .file import *
from .project import *
from .share import *
from .storage import *
from .thread import *
from .thread import ThreadDetail

# Rebuild models to resolve forward references
ThreadDetail.model_rebuild()
