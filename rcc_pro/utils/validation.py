"""Input validation helpers for RCC Pro."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(Enum):
    """Severity level for validation messages."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ValidationMessage:
    """A single validation finding."""

    severity: Severity
    parameter: str
    message: str
    value: Any = None
    limit: Any = None


@dataclass
class ValidationResult:
    """Aggregated validation result."""

    messages: list[ValidationMessage] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(m.severity == Severity.ERROR for m in self.messages)

    @property
    def has_warnings(self) -> bool:
        return any(m.severity == Severity.WARNING for m in self.messages)

    @property
    def errors(self) -> list[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.WARNING]

    def add(self, severity: Severity, parameter: str, message: str, **kwargs: Any) -> None:
        self.messages.append(
            ValidationMessage(severity=severity, parameter=parameter, message=message, **kwargs)
        )

    def error(self, parameter: str, message: str, **kwargs: Any) -> None:
        self.add(Severity.ERROR, parameter, message, **kwargs)

    def warning(self, parameter: str, message: str, **kwargs: Any) -> None:
        self.add(Severity.WARNING, parameter, message, **kwargs)

    def info(self, parameter: str, message: str, **kwargs: Any) -> None:
        self.add(Severity.INFO, parameter, message, **kwargs)

    def merge(self, other: ValidationResult) -> None:
        self.messages.extend(other.messages)

    def summary(self) -> str:
        """Join all error messages into one line."""
        return "; ".join(m.message for m in self.errors)


# --- Common validators ---


def validate_positive(name: str, value: float, result: ValidationResult) -> None:
    """Validate that a value is strictly positive."""
    if value <= 0:
        result.error(name, f"{name} must be positive, got {value}", value=value)


def validate_non_negative(name: str, value: float, result: ValidationResult) -> None:
    """Validate that a value is zero or positive."""
    if value < 0:
        result.error(name, f"{name} must not be negative, got {value}", value=value)


def validate_range(
    name: str,
    value: float,
    low: float,
    high: float,
    result: ValidationResult,
    severity: Severity = Severity.ERROR,
) -> None:
    """Validate that a value falls within [low, high]."""
    if value < low or value > high:
        result.add(
            severity, name, f"{name} = {value} is outside [{low}, {high}]",
            value=value, limit=(low, high),
        )


def validate_efficiency(name: str, value: float, result: ValidationResult) -> None:
    """Validate an efficiency in (0, 1]."""
    if not 0.0 < value <= 1.0:
        result.error(name, f"{name} must be in (0, 1], got {value}", value=value, limit=(0.0, 1.0))


def validate_compressor(prefix: str, spec: Any, result: ValidationResult) -> None:
    """Run validation checks on a compressor specification.

    Works on any object carrying the ``CompressorSpec`` attributes.
    """
    if spec.efficiency_type not in ("isentropic", "isothermal"):
        result.error(
            f"{prefix}.efficiency_type",
            f"efficiency_type must be 'isentropic' or 'isothermal', got {spec.efficiency_type!r}",
        )
    if spec.efficiency_curve is None and not spec.auto_efficiency:
        validate_efficiency(f"{prefix}.isentropic_efficiency", spec.isentropic_efficiency, result)
        if spec.efficiency_type == "isothermal":
            validate_efficiency(f"{prefix}.isothermal_efficiency", spec.isothermal_efficiency, result)
    if spec.efficiency_curve is not None:
        if len(spec.efficiency_curve) == 0:
            result.error(f"{prefix}.efficiency_curve", "Efficiency curve has no coefficients")
        if spec.curve_domain is not None and spec.curve_domain[0] >= spec.curve_domain[1]:
            result.error(
                f"{prefix}.curve_domain",
                f"Curve domain {spec.curve_domain} is not increasing",
            )
    if not spec.auto_efficiency:
        validate_efficiency(f"{prefix}.volumetric_efficiency", spec.volumetric_efficiency, result)
    validate_efficiency(f"{prefix}.mechanical_efficiency", spec.mechanical_efficiency, result)
    validate_efficiency(f"{prefix}.motor_efficiency", spec.motor_efficiency, result)

    if spec.displacement is not None:
        validate_positive(f"{prefix}.displacement", spec.displacement, result)
    if spec.swept_volume is not None:
        validate_positive(f"{prefix}.swept_volume", spec.swept_volume, result)
    if spec.speed is not None:
        validate_positive(f"{prefix}.speed", spec.speed, result)
    if spec.efficiency_basis not in ("shaft", "input"):
        result.error(
            f"{prefix}.efficiency_basis",
            f"efficiency_basis must be 'shaft' or 'input', got {spec.efficiency_basis!r}",
        )
    if spec.isentropic_efficiency < 0.4 and spec.efficiency_curve is None:
        result.warning(
            f"{prefix}.isentropic_efficiency",
            f"Isentropic efficiency {spec.isentropic_efficiency:.2f} is unusually low",
        )
