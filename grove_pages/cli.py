"""Cyclopts CLI entrypoint for building grove sites.

The ``grove`` console script loads ``site.yaml``, reads templates and content
from beside it, builds every reachable page in every configured language, and
writes the HTML into the output directory. Warnings are printed after the
written paths; a build that cannot produce a coherent site exits non-zero.

Examples
--------
Build the site described by ``site/site.yaml``:

>>> from grove_pages.cli import app
>>> app(["build", "--config", "site/site.yaml"])  # doctest: +SKIP

Remove the generated output:

>>> app(["clean", "--config", "site/site.yaml"])  # doctest: +SKIP
"""

from __future__ import annotations

import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .builder import build_site
from .config import SiteConfigError, load_site_config
from .diagnostics import BuildError
from .output import clean_output, write_site
from .report import BuildReportWriter, format_warning
from .sources import SourceError, load_sources

DEFAULT_CONFIG = Path("site.yaml")

app = App(name="grove", config=cyclopts.config.Env("GROVE_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _fail(message: str, code: int) -> typ.NoReturn:
    print(f"error: {message}", file=sys.stderr)
    raise SystemExit(code)


@app.command(help="Build every reachable page into the output directory.")
def build(
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to site config", env_var="GROVE_CONFIG")
    ] = DEFAULT_CONFIG,
    output_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override the output folder", env_var="GROVE_OUTPUT_DIR"),
    ] = None,
    report: typ.Annotated[
        bool, Parameter(help="Also write an HTML build report")
    ] = False,
) -> None:
    """Build the site described by ``config``.

    Parameters
    ----------
    config : Path, optional
        Path to ``site.yaml``; templates and content live beside it.
    output_dir : Path or None, optional
        Directory to write into instead of the configured ``output_dir``.
    report : bool, optional
        Write ``_report.html`` next to the pages.

    Returns
    -------
    None
        Prints ``wrote <path>`` for each file, then one line per warning.

    Raises
    ------
    SystemExit
        With status 2 when the configuration or sources cannot be loaded,
        and status 1 when the build fails.
    """
    try:
        site_config = load_site_config(config)
        sources = load_sources(site_config)
    except (FileNotFoundError, SiteConfigError, SourceError) as exc:
        _fail(str(exc), 2)

    try:
        result = build_site(site_config, sources)
    except BuildError as exc:
        for page in exc.invalid_pages:
            print(f"error: invalid page {page}", file=sys.stderr)
        _fail(str(exc), 1)

    target_dir = output_dir or site_config.output_dir
    for path in write_site(result, site_config, output_dir=target_dir):
        print(f"wrote {_format_path(path)}")
    if report:
        report_path = BuildReportWriter().write(result, target_dir)
        print(f"wrote {_format_path(report_path)}")
    for warning in result.warnings:
        print(format_warning(warning))


@app.command(help="Remove the generated output directory.")
def clean(
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to site config", env_var="GROVE_CONFIG")
    ] = DEFAULT_CONFIG,
    output_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override the output folder", env_var="GROVE_OUTPUT_DIR"),
    ] = None,
) -> None:
    """Delete the output directory of the site described by ``config``."""
    target_dir = output_dir or load_site_config(config).output_dir
    if clean_output(target_dir):
        print(f"removed {_format_path(target_dir)}")
    else:
        print(f"nothing to remove at {_format_path(target_dir)}")


def main() -> None:
    """Invoke the Cyclopts application that powers the ``grove`` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
