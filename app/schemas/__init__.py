# ruff: noqa: F403, F401
"""Schemas package initialization."""

from .base import *
from .events import *
from .messaging import *
from .notification import *
