"""Write built pages and the build manifest to the output directory."""

from __future__ import annotations

import json
import shutil
import typing as typ
from pathlib import Path

from ._constants import ASSETS_DIRNAME, BUNDLED_ASSET_DIRS, MANIFEST_FILENAME
from .html_writer import render_html
from .strategies import resolve_output_path_strategy

if typ.TYPE_CHECKING:
    from .config import SiteConfig
    from .models import BuildResult


def write_site(
    result: BuildResult, site_config: SiteConfig, *, output_dir: Path | None = None
) -> list[Path]:
    """Write every page of ``result`` and a manifest describing them.

    Parameters
    ----------
    result : BuildResult
        Pages with resolved links.
    site_config : SiteConfig
        Supplies the output path strategy and the default output directory.
    output_dir : Path, optional
        Overrides ``site_config.output_dir``.

    Returns
    -------
    list[Path]
        Written page files in build order, then copied assets, then the
        manifest.
    """
    out_dir = output_dir or site_config.output_dir
    output_path = resolve_output_path_strategy(site_config.output_path_strategy)
    written: list[Path] = []
    manifest: list[dict[str, str]] = []
    for page in result.pages:
        relative = output_path(path=page.path, page=page, lang=page.lang)
        target = out_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        html = render_html(page.tree)
        if not html.endswith("\n"):
            html += "\n"
        target.write_text(html, encoding="utf-8")
        written.append(target)
        manifest.append(
            {
                "content_key": page.content_key,
                "lang": page.lang,
                "url": page.path,
                "file": Path(relative).as_posix(),
                "title": page.title,
            }
        )

    written.extend(copy_assets(site_config.root_dir, out_dir))
    manifest_path = out_dir / MANIFEST_FILENAME
    out_dir.mkdir(parents=True, exist_ok=True)
    payload = {"pages": manifest, "warnings": len(result.warnings)}
    manifest_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    written.append(manifest_path)
    return written


def _skip_bundled(directory: str, names: list[str]) -> set[str]:
    """Return the ``css`` and ``js`` directories below ``directory``."""
    return {
        name
        for name in names
        if name in BUNDLED_ASSET_DIRS and (Path(directory) / name).is_dir()
    }


def copy_assets(root_dir: Path, output_dir: Path) -> list[Path]:
    """Copy ``root_dir/assets`` into ``output_dir/assets``.

    ``css`` and ``js`` directories are skipped at any depth. Existing files in
    the target are overwritten.

    Parameters
    ----------
    root_dir : Path
        Site directory that may hold an ``assets`` folder.
    output_dir : Path
        Directory receiving the copy.

    Returns
    -------
    list[Path]
        Copied files in the order they were written; empty when the site has
        no ``assets`` folder.
    """
    source = root_dir / ASSETS_DIRNAME
    if not source.is_dir():
        return []
    copied: list[Path] = []

    def _copy(src: str, dst: str) -> str:
        shutil.copy2(src, dst)
        copied.append(Path(dst))
        return dst

    shutil.copytree(
        source,
        output_dir / ASSETS_DIRNAME,
        ignore=_skip_bundled,
        copy_function=_copy,
        dirs_exist_ok=True,
    )
    return copied


def clean_output(output_dir: Path) -> bool:
    """Remove ``output_dir``; return False when there was nothing to remove."""
    if not output_dir.exists():
        return False
    shutil.rmtree(output_dir)
    return True


__all__ = ["clean_output", "copy_assets", "write_site"]
