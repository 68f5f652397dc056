"""Configuration for building a UsageService from the process environment."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from model_pricing import DEFAULT_PRICE_SPEC_URL, PricingProvider, PricingResolver
from tokenbar_internal.paths import (
    CLAUDE_CONFIG_DIR_ENV,
    CODEX_HOME_ENV,
    get_default_claude_roots,
    get_default_codex_home,
    split_path_list,
)

from .ingestion.discovery import LogDiscoverer
from .ingestion.schemas import LogSource
from .ingestion.service import ALL_SOURCES, UsageService

PRICE_SPEC_URL_ENV = "TOKENBAR_PRICE_SPEC_URL"


@dataclass(frozen=True)
class UsageConfig:
    """Resolved settings for one usage engine.

    Attributes:
        claude_roots: Candidate Claude config directories (each must contain `projects/`).
        codex_roots: Candidate Codex home directories (each must contain `sessions/`).
        sources: Log sources to include in snapshots.
        price_spec_url: Remote price table location.
    """

    claude_roots: tuple[Path, ...] = ()
    codex_roots: tuple[Path, ...] = ()
    sources: tuple[LogSource, ...] = ALL_SOURCES
    price_spec_url: str = DEFAULT_PRICE_SPEC_URL

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
        sources: Sequence[LogSource] = ALL_SOURCES,
    ) -> UsageConfig:
        """Build configuration from `CLAUDE_CONFIG_DIR`, `CODEX_HOME` and home-relative defaults.

        Raises:
            RuntimeError: If a default is needed and the home directory cannot be determined.
        """
        env = environ if environ is not None else os.environ

        claude_override = env.get(CLAUDE_CONFIG_DIR_ENV, "").strip()
        claude_roots = split_path_list(claude_override) if claude_override else []
        if not claude_roots:
            claude_roots = get_default_claude_roots(home)

        codex_override = env.get(CODEX_HOME_ENV, "").strip()
        codex_root = Path(codex_override).expanduser() if codex_override else get_default_codex_home(home)

        return cls(
            claude_roots=tuple(claude_roots),
            codex_roots=(codex_root,),
            sources=tuple(sources),
            price_spec_url=env.get(PRICE_SPEC_URL_ENV) or DEFAULT_PRICE_SPEC_URL,
        )

    def build_discoverer(self) -> LogDiscoverer:
        return LogDiscoverer(claude_roots=self.claude_roots, codex_roots=self.codex_roots)

    def build_service(self, pricing: PricingProvider | None = None) -> UsageService:
        """Wire discovery and pricing into a UsageService."""
        return UsageService(
            discoverer=self.build_discoverer(),
            pricing=pricing if pricing is not None else PricingResolver(url=self.price_spec_url),
            sources=self.sources,
        )
