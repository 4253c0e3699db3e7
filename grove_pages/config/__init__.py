"""Load and validate site configuration YAML for grove builds.

This subpackage parses the project's ``site.yaml`` file, resolves the output
directory relative to the file, checks strategy names against the registered
strategies, and produces the :class:`SiteConfig` dataclass the builder
consumes. The primary entry point is :func:`load_site_config`.

Examples
--------
>>> from pathlib import Path
>>> from grove_pages.config import load_site_config
>>> site = load_site_config(Path("site/site.yaml"))  # doctest: +SKIP
>>> site.render_roots  # doctest: +SKIP
('home',)
"""

from .loader import build_site_config, load_site_config
from .models import LanguageConfig, SiteConfig, SiteConfigError

__all__ = [
    "LanguageConfig",
    "SiteConfig",
    "SiteConfigError",
    "build_site_config",
    "load_site_config",
]
