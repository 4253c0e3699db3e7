"""Build static multi-language sites from YAML templates and content.

This package exposes the ``grove`` CLI and the pieces it is made of: the
template node model, the directive evaluator, content discovery, the two-phase
link resolver, and the site builder.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from grove_pages import main
>>> main()  # doctest: +SKIP
>>> from grove_pages import app
>>> callable(app)
True
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
