"""
Strategy selection.

A StrategySpec names a StrategyType plus constructor parameters. The engine
keeps specs, not instances, and calls create_strategy() once per run so
stateful strategies never leak between runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union

from crypto.backtesting.errors import InvalidConfigurationError
from crypto.backtesting.strategies.base import Strategy
from crypto.backtesting.strategies.candlestick import CandlestickStrategy
from crypto.backtesting.strategies.dca import DCAStrategy
from crypto.backtesting.strategies.ensemble import EnsembleStrategy
from crypto.backtesting.strategies.grid import GridStrategy
from crypto.backtesting.strategies.momentum import MomentumStrategy
from crypto.backtesting.strategies.technical import TechnicalStrategy


class StrategyType(str, Enum):
    """Available strategy variants."""
    DCA = "dca"
    GRID = "grid"
    TECHNICAL = "technical"
    MOMENTUM = "momentum"
    CANDLESTICK = "candlestick"
    ENSEMBLE = "ensemble"


STRATEGY_CLASSES = {
    StrategyType.DCA: DCAStrategy,
    StrategyType.GRID: GridStrategy,
    StrategyType.TECHNICAL: TechnicalStrategy,
    StrategyType.MOMENTUM: MomentumStrategy,
    StrategyType.CANDLESTICK: CandlestickStrategy,
    StrategyType.ENSEMBLE: EnsembleStrategy,
}


@dataclass(frozen=True)
class StrategySpec:
    """Strategy variant plus its constructor parameters."""

    type: StrategyType
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.type.value

    def to_dict(self) -> Dict[str, Any]:
        params = dict(self.params)
        if self.type is StrategyType.ENSEMBLE and "members" in params:
            params["members"] = [
                m.to_dict() if isinstance(m, StrategySpec) else m for m in params["members"]
            ]
        return {"type": self.type.value, "params": params}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StrategySpec":
        return cls(type=parse_strategy_type(data["type"]), params=dict(data.get("params", {})))


def parse_strategy_type(value: Union[str, StrategyType]) -> StrategyType:
    """Resolve a strategy name (case-insensitive) to its StrategyType."""
    if isinstance(value, StrategyType):
        return value
    try:
        return StrategyType(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(t.value for t in StrategyType)
        raise InvalidConfigurationError(f"Unknown strategy {value!r}. Valid: {valid}")


def create_strategy(spec: Union[StrategySpec, Dict[str, Any]]) -> Strategy:
    """
    Build a fresh strategy instance.

    Args:
        spec: StrategySpec or its dict form ({"type": ..., "params": {...}})

    Returns:
        New Strategy with no carried state

    Raises:
        InvalidConfigurationError: unknown type, unknown or invalid parameters
    """
    if isinstance(spec, dict):
        spec = StrategySpec.from_dict(spec)

    params = dict(spec.params)
    if spec.type is StrategyType.ENSEMBLE:
        params["members"] = [create_strategy(m) for m in params.get("members", [])]

    strategy_cls = STRATEGY_CLASSES[spec.type]
    try:
        return strategy_cls(**params)
    except TypeError as e:
        raise InvalidConfigurationError(f"Invalid parameters for {spec.name}: {e}") from e
