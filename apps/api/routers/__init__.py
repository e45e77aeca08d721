"""Routers package."""

from . import (
    health,
    share,
    cleanup,
)
