from __future__ import annotations

import subprocess
from typing import List, Optional, Sequence

from .common import (
    CatalogUnavailable, ModelAmbiguous, ModelNotFound, Settings,
    ToolUnavailable, log_debug
)


# =========================
# Catalog
# =========================

def parse_catalog(output: str) -> List[str]:
    return [ln.strip() for ln in output.splitlines() if ln.strip()]


def fetch_model_catalog(settings: Settings) -> List[str]:
    """
    Ask `opencode models` for the valid identifiers, one per line.
    Fetched fresh on every call; there is no cache to fall back on.
    """
    cmd = [settings.opencode_bin, "models"]
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        raise ToolUnavailable(f"'{settings.opencode_bin}' not found on PATH") from None
    except OSError as e:
        raise CatalogUnavailable(f"Could not run {' '.join(cmd)}: {e}") from e

    if proc.returncode != 0:
        detail = (proc.stderr or "").strip()
        raise CatalogUnavailable(
            f"{' '.join(cmd)} exited with code {proc.returncode}"
            + (f": {detail}" if detail else "")
        )
    catalog = parse_catalog(proc.stdout or "")
    if not catalog:
        raise CatalogUnavailable(f"{' '.join(cmd)} returned no models")
    log_debug(f"Catalog has {len(catalog)} model(s)")
    return catalog


# =========================
# Resolution
# =========================

def _bullets(items: Sequence[str]) -> str:
    return "\n".join(f"  - {m}" for m in items)


def resolve_model(requested: Optional[str], catalog: Sequence[str], default: Optional[str] = None) -> str:
    """
    Matching order:
      1) exact (case-sensitive)
      2) exact ignoring case -> first hit, duplicates are not an error
      3) substring ignoring case -> must be unique
    """
    if requested is None or not requested.strip():
        if default is None:
            raise ModelNotFound("No model requested and no default configured", list(catalog))
        requested = default

    if requested in catalog:
        return requested

    wanted = requested.lower()
    for m in catalog:
        if m.lower() == wanted:
            return m

    matches = [m for m in catalog if wanted in m.lower()]
    if not matches:
        raise ModelNotFound(
            f"Model '{requested}' not found. Available models:\n{_bullets(catalog)}",
            list(catalog),
        )
    if len(matches) > 1:
        raise ModelAmbiguous(
            f"Model '{requested}' is ambiguous. Matching models:\n{_bullets(matches)}",
            matches,
        )
    return matches[0]
