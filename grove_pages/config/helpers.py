"""Utility helpers shared by the grove configuration loader."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from .models import LanguageConfig, SiteConfigError


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _normalize_keys(value: object, *, field: str) -> tuple[str, ...]:
    """Normalize a key or list of keys into a tuple of non-empty strings."""
    match value:
        case None:
            return ()
        case str():
            text = value.strip()
            return (text,) if text else ()
        case list() | tuple():
            keys: list[str] = []
            for item in value:
                text = _optional_str(item)
                if text and text not in keys:
                    keys.append(text)
            return tuple(keys)
        case _:
            msg = f"'{field}' must be a string or a list of strings."
            raise SiteConfigError(msg)


def _build_languages(payload: object) -> dict[str, LanguageConfig]:
    """Build language configs from ``{code: {default, label}}`` or a list of codes."""
    languages: dict[str, LanguageConfig] = {}
    match payload:
        case cabc.Mapping():
            for code, settings in payload.items():
                options = settings if isinstance(settings, cabc.Mapping) else {}
                languages[str(code)] = LanguageConfig(
                    code=str(code),
                    default=bool(options.get("default", False)),
                    label=_optional_str(options.get("label")),
                )
        case list() | tuple():
            for code in payload:
                languages[str(code)] = LanguageConfig(code=str(code))
        case _:
            pass
    if not languages:
        msg = "No languages defined in site configuration."
        raise SiteConfigError(msg)
    defaults = [code for code, language in languages.items() if language.default]
    if len(defaults) > 1:
        msg = f"Only one default language is allowed, got: {', '.join(defaults)}"
        raise SiteConfigError(msg)
    return languages


def _mapping(value: object, *, field: str) -> dict[str, typ.Any]:
    """Return ``value`` as a plain dict, rejecting non-mappings."""
    if value is None:
        return {}
    if not isinstance(value, cabc.Mapping):
        msg = f"'{field}' must be a mapping."
        raise SiteConfigError(msg)
    return {str(key): item for key, item in value.items()}


__all__ = ["_build_languages", "_mapping", "_normalize_keys", "_optional_str"]
