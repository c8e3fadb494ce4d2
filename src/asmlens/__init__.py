"""asmlens — side-by-side assembly and source for selected functions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from asmlens.version import __version__

if TYPE_CHECKING:
    from asmlens.config.models import AsmLensConfig
    from asmlens.extraction.source_cache import SourceCache


@dataclass
class AsmLensContext:
    """Dependency-injection container shared across CLI commands."""

    config: AsmLensConfig | None = None
    source_cache: SourceCache | None = None

    def ensure_config(self) -> AsmLensConfig:
        if self.config is None:
            from asmlens.config.loader import load_config

            self.config = load_config()
        return self.config

    def ensure_source_cache(self) -> SourceCache:
        if self.source_cache is None:
            from asmlens.extraction.source_cache import SourceCache

            cfg = self.ensure_config()
            self.source_cache = SourceCache(roots=cfg.sources.roots)
        return self.source_cache


__all__ = ["AsmLensContext", "__version__"]
