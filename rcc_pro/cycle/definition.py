"""Cycle modes, configuration and result records.

A :class:`CycleConfiguration` is one flat input bundle shared by all modes;
each mode reads the fields it needs and ignores the rest. Results are
returned as an immutable :class:`CycleResult`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from rcc_pro.cycle.components.base import StatePoint
from rcc_pro.cycle.efficiency import CompressorSpec


class CycleMode(Enum):
    """Supported cycle topologies."""

    OIL_REFRIGERATION = "oil_refrigeration"
    SINGLE_STAGE = "single_stage"
    TWO_STAGE_FLASH = "two_stage_flash"
    CASCADE = "cascade"
    TWO_STAGE_SUBCOOLER = "two_stage_subcooler"
    TWO_STAGE_DOUBLE_ECONOMIZER = "two_stage_double_economizer"
    AMMONIA_HEAT_PUMP = "ammonia_heat_pump"

    @classmethod
    def parse(cls, mode: CycleMode | str | int) -> CycleMode:
        """Accept a CycleMode, its value or name, or a mode number 2–7 / ``"3ts"``.

        Raises:
            ValueError: If the mode is not recognised.
        """
        if isinstance(mode, cls):
            return mode
        key = str(mode).strip().lower()
        if key in _MODE_NUMBERS:
            return _MODE_NUMBERS[key]
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown cycle mode: {mode!r}")

    @property
    def number(self) -> str:
        """Mode number used on the command line."""
        return {v: k for k, v in _MODE_NUMBERS.items()}[self]


_MODE_NUMBERS = {
    "2": CycleMode.OIL_REFRIGERATION,
    "3": CycleMode.SINGLE_STAGE,
    "3ts": CycleMode.TWO_STAGE_FLASH,
    "4": CycleMode.CASCADE,
    "5": CycleMode.TWO_STAGE_SUBCOOLER,
    "6": CycleMode.TWO_STAGE_DOUBLE_ECONOMIZER,
    "7": CycleMode.AMMONIA_HEAT_PUMP,
}

_SPEC_FIELDS = ("compressor", "high_stage_compressor", "intermediate_compressor")
_TUPLE_FIELDS = (
    "economizer_pressures",
    "rating_capacity_coefficients",
    "rating_power_coefficients",
)


@dataclass(frozen=True)
class CycleConfiguration:
    """Input bundle for one cycle calculation. SI units throughout.

    Give each saturation condition either as a temperature or as a pressure.
    """

    fluid: str = ""

    # Saturation conditions
    evaporating_temperature: float | None = None  # K
    evaporating_pressure: float | None = None  # Pa
    condensing_temperature: float | None = None  # K
    condensing_pressure: float | None = None  # Pa
    superheat: float = 5.0  # K
    subcooling: float = 5.0  # K

    # Compressors
    compressor: CompressorSpec = field(default_factory=CompressorSpec)
    high_stage_compressor: CompressorSpec | None = None
    intermediate_compressor: CompressorSpec | None = None  # mode 6 middle leg
    mass_flow: float | None = None  # kg/s, suction mass flow override

    # Economizers
    intermediate_pressure: float | None = None  # Pa
    economizer_pressures: tuple[float, float] | None = None  # Pa, mode 6
    economizer_type: str = "flash"
    economizer_superheat: float = 0.0  # K, subcooler side stream
    economizer_approach: float = 5.0  # K, subcooled liquid above T_sat(P_eco)
    economizer_enabled: bool = False  # single-stage ECO port
    lower_economizer_enabled: bool = True  # mode 6
    upper_economizer_enabled: bool = True  # mode 6
    lower_economizer_type: str | None = None  # mode 6, None: economizer_type
    upper_economizer_type: str | None = None  # mode 6, None: economizer_type

    # Suction-line heat exchanger
    slhx_effectiveness: float = 0.0

    # Oil (mode 2)
    oil_fraction: float | None = None  # oil mass fraction in the liquid
    oil_molar_mass: float = 0.45  # kg/mol

    # Measured discharge temperatures and hot-gas cooling
    discharge_temperature: float | None = None  # K, last compression stage
    low_stage_discharge_temperature: float | None = None  # K, first stage of modes 3ts/5/6
    aftercooler_temperature: float | None = None  # K, mode 3 aftercooler outlet

    # Cascade (mode 4)
    high_fluid: str | None = None
    high_superheat: float = 5.0  # K
    high_subcooling: float = 5.0  # K
    cascade_approach: float = 5.0  # K
    cascade_temperature: float | None = None  # K, high-loop evaporating
    high_economizer_enabled: bool = False  # ECO port on the high loop
    high_economizer_type: str = "flash"

    # Heat pump (mode 7)
    heat_sink_inlet_temperature: float | None = None  # K
    heat_sink_outlet_temperature: float | None = None  # K
    condenser_approach: float = 5.0  # K
    useful_superheat: float | None = None  # K, None: all superheat is useful
    desuperheater_temperature: float | None = None  # K
    sink_subcooler_approach: float | None = None  # K, None: no sink subcooler
    rating_capacity_coefficients: tuple[float, ...] | None = None
    rating_power_coefficients: tuple[float, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CycleConfiguration:
        """Rebuild a configuration from :meth:`to_dict` output.

        Unknown keys raise ``TypeError`` like the dataclass constructor.
        """
        data = dict(data)
        for key in _SPEC_FIELDS:
            if isinstance(data.get(key), dict):
                data[key] = CompressorSpec.from_dict(data[key])
        for key in _TUPLE_FIELDS:
            if data.get(key) is not None:
                data[key] = tuple(float(v) for v in data[key])
        return cls(**data)


@dataclass(frozen=True)
class StageResult:
    """One compression leg."""

    name: str
    inlet: StatePoint
    outlet: StatePoint
    isentropic_outlet: StatePoint
    mass_flow: float  # kg/s
    pressure_ratio: float
    isentropic_efficiency: float
    isentropic_work: float  # J/kg
    actual_work: float  # J/kg
    indicated_power: float  # W
    shaft_power: float  # W
    input_power: float  # W
    volumetric_efficiency: float | None = None

    @property
    def discharge_temperature(self) -> float:
        return self.outlet.temperature


@dataclass(frozen=True)
class CycleResult:
    """Performance of one solved cycle.

    ``cop`` is the useful effect of the mode: cooling for the refrigeration
    modes, heating for the heat pump. All powers are electrical input. The
    mapping fields are read-only views.
    """

    mode: CycleMode
    fluid: str
    state_points: tuple[StatePoint, ...]
    stages: tuple[StageResult, ...]
    mass_flows: Mapping[str, float]
    heat_absorbed: float  # W
    heat_rejected: float  # W
    total_power: float  # W
    cop_cooling: float
    cop_heating: float
    cop: float
    oil_heat: float = 0.0  # W
    discharge_temperatures: Mapping[str, float] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)
    loops: tuple[CycleResult, ...] = ()

    def __post_init__(self) -> None:
        for name in ("mass_flows", "discharge_temperatures", "details"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def discharge_temperature(self) -> float:
        """Discharge temperature of the last compression leg [K]."""
        return self.stages[-1].outlet.temperature

    def state(self, label: str) -> StatePoint:
        """Return the first state point with *label*.

        Raises:
            KeyError: If no point carries the label.
        """
        for point in self.state_points:
            if point.label == label:
                return point
        raise KeyError(f"No state point '{label}'. Available: {[p.label for p in self.state_points]}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "fluid": self.fluid,
            "state_points": [asdict(p) for p in self.state_points],
            "stages": [asdict(s) for s in self.stages],
            "mass_flows": dict(self.mass_flows),
            "heat_absorbed": self.heat_absorbed,
            "heat_rejected": self.heat_rejected,
            "total_power": self.total_power,
            "cop_cooling": self.cop_cooling,
            "cop_heating": self.cop_heating,
            "cop": self.cop,
            "oil_heat": self.oil_heat,
            "discharge_temperatures": dict(self.discharge_temperatures),
            "warnings": list(self.warnings),
            "details": dict(self.details),
            "loops": [loop.to_dict() for loop in self.loops],
        }
