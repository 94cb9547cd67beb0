"""
cppcheckdata_mtag/config.py: settings for a memory-tag analysis session.

Configuration comes from three layers, later ones winning:

1. the defaults below;
2. an optional JSON file (``MtagConfig.from_file``)::

       {"alloc_functions": ["kmalloc", "kzalloc", "devm_kzalloc"],
        "passes": 3}

3. command-line overrides (``with_overrides``).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Union

from cppcheckdata_mtag.errors import ConfigError

__all__ = ["DEFAULT_ALLOC_FUNCTIONS", "MtagConfig"]

logger = logging.getLogger(__name__)

DEFAULT_ALLOC_FUNCTIONS: FrozenSet[str] = frozenset({"kmalloc", "kzalloc"})

_KNOWN_KEYS = frozenset({"pass_id", "alloc_functions", "passes"})


@dataclass(frozen=True)
class MtagConfig:
    """Tuning knobs for the memory-tag analysis."""

    pass_id: str = "mtag"
    alloc_functions: FrozenSet[str] = field(default=DEFAULT_ALLOC_FUNCTIONS)
    passes: int = 2

    def validate(self) -> List[str]:
        """Return a list of problems (empty if valid)."""
        problems: List[str] = []
        if not self.pass_id:
            problems.append("pass_id must not be empty")
        if self.passes < 1:
            problems.append("passes must be at least 1")
        for name in self.alloc_functions:
            if not name or not name.replace("_", "a").isalnum():
                problems.append(f"not a function name: {name!r}")
        return problems

    def checked(self) -> MtagConfig:
        problems = self.validate()
        if problems:
            raise ConfigError("invalid configuration: " + "; ".join(problems))
        return self

    def with_overrides(
        self,
        *,
        alloc_functions: Optional[Iterable[str]] = None,
        extra_alloc_functions: Optional[Iterable[str]] = None,
        passes: Optional[int] = None,
    ) -> MtagConfig:
        """Copy with the given fields replaced (``None`` keeps the value)."""
        changes: Dict[str, Any] = {}
        allocs = self.alloc_functions
        if alloc_functions is not None:
            allocs = frozenset(alloc_functions)
        if extra_alloc_functions:
            allocs = allocs | frozenset(extra_alloc_functions)
        if allocs != self.alloc_functions:
            changes["alloc_functions"] = allocs
        if passes is not None:
            changes["passes"] = passes
        return replace(self, **changes).checked()

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> MtagConfig:
        if not isinstance(doc, dict):
            raise ConfigError("configuration must be a JSON object")
        unknown = set(doc) - _KNOWN_KEYS
        if unknown:
            raise ConfigError(
                f"unknown configuration keys: {', '.join(sorted(unknown))}",
                hint=f"known keys are {', '.join(sorted(_KNOWN_KEYS))}",
            )
        kwargs: Dict[str, Any] = {}
        if "pass_id" in doc:
            kwargs["pass_id"] = str(doc["pass_id"])
        if "alloc_functions" in doc:
            allocs = doc["alloc_functions"]
            if isinstance(allocs, str) or not isinstance(allocs, list):
                raise ConfigError("alloc_functions must be a list of names")
            kwargs["alloc_functions"] = frozenset(str(a) for a in allocs)
        if "passes" in doc:
            try:
                kwargs["passes"] = int(doc["passes"])
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"passes must be an integer: {exc}") from exc
        return cls(**kwargs).checked()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> MtagConfig:
        p = Path(path)
        logger.info("Loading configuration from %s", p)
        try:
            with open(p, encoding="utf-8") as fh:
                doc = json.load(fh)
        except OSError as exc:
            raise ConfigError(f"cannot read {p}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{p}: invalid JSON: {exc}") from exc
        return cls.from_dict(doc)
