"""Cycle calculation orchestrator for RCC Pro.

Selects the solver for the requested mode, checks that the configuration
carries everything the mode needs, and runs it with a fresh property
provider. Solver errors are never retried or rewrapped.

Supported modes:
- 2   oil refrigeration (single stage, oil-dilution correction)
- 3   single stage
- 3ts two stage with flash-tank economizer
- 4   cascade
- 5   two stage with subcooler economizer
- 6   two stage with two economizers
- 7   ammonia heat pump
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from rcc_pro.core.errors import InvalidConfiguration, MissingParameter
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.economizer import EconomizerType
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult
from rcc_pro.cycle.modes import (
    ammonia_heat_pump,
    cascade,
    oil_refrigeration,
    single_stage,
    two_stage_double_economizer,
    two_stage_flash,
    two_stage_subcooler,
)
from rcc_pro.cycle.modes.common import check_ordering
from rcc_pro.utils.validation import (
    ValidationResult,
    validate_compressor,
    validate_non_negative,
    validate_positive,
    validate_range,
)

logger = logging.getLogger(__name__)

Solver = Callable[[CycleConfiguration, PropertyProvider], CycleResult]

_SOLVERS: dict[CycleMode, Solver] = {
    CycleMode.OIL_REFRIGERATION: oil_refrigeration.solve,
    CycleMode.SINGLE_STAGE: single_stage.solve,
    CycleMode.TWO_STAGE_FLASH: two_stage_flash.solve,
    CycleMode.CASCADE: cascade.solve,
    CycleMode.TWO_STAGE_SUBCOOLER: two_stage_subcooler.solve,
    CycleMode.TWO_STAGE_DOUBLE_ECONOMIZER: two_stage_double_economizer.solve,
    CycleMode.AMMONIA_HEAT_PUMP: ammonia_heat_pump.solve,
}

# Fields each mode needs; a tuple lists alternatives (any one will do)
_EVAPORATING = ("evaporating_temperature", "evaporating_pressure")
_CONDENSING = ("condensing_temperature", "condensing_pressure")
_BASE_REQUIREMENTS: tuple[tuple[str, ...], ...] = (("fluid",), _EVAPORATING, _CONDENSING)

_REQUIREMENTS: dict[CycleMode, tuple[tuple[str, ...], ...]] = {
    CycleMode.OIL_REFRIGERATION: _BASE_REQUIREMENTS + (("oil_fraction",),),
    CycleMode.SINGLE_STAGE: _BASE_REQUIREMENTS,
    CycleMode.TWO_STAGE_FLASH: _BASE_REQUIREMENTS + (("high_stage_compressor",),),
    CycleMode.CASCADE: _BASE_REQUIREMENTS + (("high_fluid",), ("high_stage_compressor",)),
    CycleMode.TWO_STAGE_SUBCOOLER: _BASE_REQUIREMENTS + (("high_stage_compressor",),),
    CycleMode.TWO_STAGE_DOUBLE_ECONOMIZER: _BASE_REQUIREMENTS
    + (("economizer_pressures",), ("high_stage_compressor",)),
    CycleMode.AMMONIA_HEAT_PUMP: (
        _EVAPORATING,
        ("heat_sink_inlet_temperature",),
        ("heat_sink_outlet_temperature",),
    ),
}


_ECONOMIZER_TYPES = frozenset(t.value for t in EconomizerType)

# Optional fields only some modes read; setting them elsewhere is an error
_MODE_FIELDS: dict[str, frozenset[CycleMode]] = {
    "discharge_temperature": frozenset(CycleMode) - {CycleMode.CASCADE},
    "low_stage_discharge_temperature": frozenset({
        CycleMode.TWO_STAGE_FLASH,
        CycleMode.TWO_STAGE_SUBCOOLER,
        CycleMode.TWO_STAGE_DOUBLE_ECONOMIZER,
    }),
    "aftercooler_temperature": frozenset({CycleMode.SINGLE_STAGE}),
}


def required_fields(mode: CycleMode | str | int) -> tuple[tuple[str, ...], ...]:
    """Configuration fields required by *mode* (tuples are alternatives)."""
    return _REQUIREMENTS[CycleMode.parse(mode)]


def check_configuration(mode: CycleMode | str | int, config: CycleConfiguration) -> ValidationResult:
    """Check a configuration for *mode* without any property lookup.

    Returns:
        ValidationResult carrying non-fatal warnings.

    Raises:
        MissingParameter: If a required field is absent.
        InvalidConfiguration: If a value is physically impossible or
            conditions are misordered.
    """
    mode = CycleMode.parse(mode)
    for alternatives in _REQUIREMENTS[mode]:
        if all(getattr(config, name) in (None, "") for name in alternatives):
            raise MissingParameter(mode.value, alternatives[0])

    result = ValidationResult()
    validate_compressor("compressor", config.compressor, result)
    for name in ("high_stage_compressor", "intermediate_compressor"):
        spec = getattr(config, name)
        if spec is not None:
            validate_compressor(name, spec, result)

    for name in ("superheat", "subcooling", "economizer_superheat", "economizer_approach", "cascade_approach", "condenser_approach"):
        validate_non_negative(name, getattr(config, name), result)
    validate_range("slhx_effectiveness", config.slhx_effectiveness, 0.0, 1.0, result)
    if config.mass_flow is not None and config.mass_flow <= 0:
        result.error("mass_flow", f"mass_flow must be positive, got {config.mass_flow}")
    if mode == CycleMode.OIL_REFRIGERATION and config.oil_fraction is not None:
        if not 0.0 <= config.oil_fraction < 1.0:
            result.error("oil_fraction", f"oil_fraction must be in [0, 1), got {config.oil_fraction}")
    if config.economizer_type not in _ECONOMIZER_TYPES:
        result.error(
            "economizer_type",
            f"economizer_type must be 'flash' or 'subcooler', got {config.economizer_type!r}",
        )
    for name in ("lower_economizer_type", "upper_economizer_type", "high_economizer_type"):
        value = getattr(config, name)
        if value is not None and value not in _ECONOMIZER_TYPES:
            result.error(name, f"{name} must be 'flash' or 'subcooler', got {value!r}")

    validate_positive("oil_molar_mass", config.oil_molar_mass, result)
    for name in (
        "sink_subcooler_approach",
        "aftercooler_temperature",
        "discharge_temperature",
        "low_stage_discharge_temperature",
    ):
        value = getattr(config, name)
        if value is not None:
            validate_positive(name, value, result)
    for name, modes in _MODE_FIELDS.items():
        if getattr(config, name) is not None and mode not in modes:
            result.error(name, f"{name} is not used by the {mode.value} cycle")

    if not result.is_valid:
        raise InvalidConfiguration(result.summary())

    # Heat pump condensing conditions come from the sink
    if mode != CycleMode.AMMONIA_HEAT_PUMP:
        check_ordering(config)
    return result


def calculate(
    mode: CycleMode | str | int,
    config: CycleConfiguration,
    provider: PropertyProvider | None = None,
) -> CycleResult:
    """Run one cycle calculation.

    Args:
        mode: Cycle mode (enum, value, or number 2–7 / ``"3ts"``).
        config: Cycle configuration.
        provider: Property provider to use; a fresh one (with its own
            cache) is created when omitted.

    Returns:
        The immutable CycleResult.

    Raises:
        CalculationError: Any failure of validation or of the solver,
            propagated unchanged.
    """
    mode = CycleMode.parse(mode)
    validation = check_configuration(mode, config)
    provider = provider if provider is not None else PropertyProvider()

    logger.info("Calculating %s cycle for %s", mode.value, config.fluid or "R717")
    result = _SOLVERS[mode](config, provider)

    extra = tuple(m.message for m in validation.warnings)
    if extra:
        result = replace(result, warnings=result.warnings + extra)
    logger.info("%s: COP %.3f, power %.2f kW", mode.value, result.cop, result.total_power / 1e3)
    return result
