"""
Grid Configuration
Run parameters for building a source-plane grid, with JSON loading and
validation. Defaults reproduce the reference 20x20 grid.
"""

import json
from typing import Dict, Optional
from dataclasses import dataclass, field, asdict, replace

from quadtree_algorithms import WIDTH, HEIGHT, N, THRESH, DEFAULT_MAX_DEPTH
from lens_models import LensParameters


class ConfigError(ValueError):
    """Raised for invalid or unreadable configuration"""


@dataclass(frozen=True)
class GridConfig:
    """Parameters of a source grid run"""
    width: int = WIDTH
    height: int = HEIGHT
    samples_per_side: int = N
    thresh: float = THRESH
    max_depth: Optional[int] = DEFAULT_MAX_DEPTH
    lens: LensParameters = field(default_factory=LensParameters)

    @property
    def threshold(self) -> float:
        """Point count above which a cell is refined"""
        return self.thresh * self.samples_per_side * self.samples_per_side

    def validate(self) -> 'GridConfig':
        if self.width < 1 or self.height < 1:
            raise ConfigError(f"grid must be at least 1x1, got {self.width}x{self.height}")
        if self.samples_per_side < 1:
            raise ConfigError(f"samples_per_side must be positive, got {self.samples_per_side}")
        if self.thresh < 0:
            raise ConfigError(f"thresh must not be negative, got {self.thresh}")
        if self.max_depth is not None and self.max_depth < 0:
            raise ConfigError(f"max_depth must not be negative, got {self.max_depth}")
        if not 0 < self.lens.q < 1:
            raise ConfigError(f"lens axis ratio q must lie in (0, 1), got {self.lens.q}")
        return self

    def with_overrides(self, **overrides) -> 'GridConfig':
        """Copy with the given fields replaced, skipping None values"""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'GridConfig':
        data = dict(data)
        lens_data = data.pop('lens', {}) or {}

        unknown = set(data) - {f for f in cls.__dataclass_fields__ if f != 'lens'}
        unknown |= {f"lens.{k}" for k in set(lens_data) - set(LensParameters.__dataclass_fields__)}
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(sorted(unknown))}")

        try:
            return cls(lens=LensParameters(**lens_data), **data).validate()
        except TypeError as e:
            raise ConfigError(str(e)) from e


def load_config(filename: str) -> GridConfig:
    """Load a GridConfig from a JSON file"""
    try:
        with open(filename, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"could not read configuration '{filename}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"configuration '{filename}' must contain a JSON object")
    return GridConfig.from_dict(data)
