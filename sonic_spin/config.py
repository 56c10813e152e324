"""sonic_spin/config.py – Tuning knobs for the rewriter."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, List


@dataclass(frozen=True)
class RewriteConfig:
    """Tuning knobs for one rewrite invocation."""

    max_rewrites: int = 10_000
    max_passes: int = 16
    parenthesize_operands: bool = True
    tolerate_malformed: bool = False
    keep_invisible_groups: bool = False
    macro_name: str = "sonic_spin"

    def validate(self) -> List[str]:
        """Return a list of validation problems (empty if valid)."""
        problems: List[str] = []
        if self.max_rewrites <= 0:
            problems.append("max_rewrites must be positive")
        if self.max_passes <= 0:
            problems.append("max_passes must be positive")
        if not self.macro_name.isidentifier():
            problems.append(f"macro_name {self.macro_name!r} is not an identifier")
        return problems

    def with_overrides(self, **overrides: Any) -> "RewriteConfig":
        """Copy of this config with the non-``None`` *overrides* applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


DEFAULT_CONFIG = RewriteConfig()
