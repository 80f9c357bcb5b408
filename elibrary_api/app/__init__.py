"""
Application package initializer.

The project is organised into layers: ``core`` holds configuration,
database bootstrapping, security and error types; ``repositories``
persist rows; ``services`` hold business rules and the cover image
store; ``api`` exposes versioned routers.  Components are built once
in ``main.create_app`` and handed their configuration explicitly.
"""

from .main import create_app  # noqa: F401
