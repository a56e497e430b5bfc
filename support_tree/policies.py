"""
Policy dataclasses for parameterizing support generation.

All public pipeline stages accept policy objects that control their
behavior. This keeps configuration JSON-serializable and documents every
parameter in one place.

Each policy includes:
- Default values defined here
- JSON schema docstring
- validate() returning a list of error messages
- to_dict() / from_dict()

UNIT CONVENTIONS
----------------
Lengths are in model units (usually millimetres). Angles are stored in
DEGREES on the policy and exposed in RADIANS through properties, because
the geometry core works in radians.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List
import json
import math


def validate_policy(policy: Any, required_fields: Optional[List[str]] = None) -> List[str]:
    """
    Validate a policy object.

    Parameters
    ----------
    policy : Any
        Policy dataclass instance to validate
    required_fields : List[str], optional
        List of field names that must be non-None

    Returns
    -------
    List[str]
        List of validation error messages (empty if valid)
    """
    errors = []

    if required_fields:
        for field_name in required_fields:
            if not hasattr(policy, field_name):
                errors.append(f"Missing required field: {field_name}")
            elif getattr(policy, field_name) is None:
                errors.append(f"Required field is None: {field_name}")

    if hasattr(policy, "validate"):
        errors.extend(policy.validate())

    return errors


def ensure_valid(policy: Any) -> None:
    """Raise ValueError listing every validation error of ``policy``."""
    errors = validate_policy(policy)
    if errors:
        raise ValueError(
            f"Invalid {type(policy).__name__}: " + "; ".join(errors)
        )


@dataclass
class SupportPolicy:
    """
    Policy for overhang detection, support point sampling and tree routing.

    JSON Schema:
    {
        "angle_limit_deg": float (degrees, 0 < x <= 90),
        "grid_density": int (>= 2),
        "continuation_length": float (model units, > 0),
        "plate_snap_distance": float (model units, >= 0),
        "tolerance": float (>= 0)
    }
    """
    angle_limit_deg: float = 60.0
    grid_density: int = 4
    continuation_length: float = 1.0  # hop of a MODEL point along its normal
    plate_snap_distance: float = 1.0  # MODEL points closer than this go straight down
    tolerance: float = 1e-9  # zero / equal distance epsilon in target selection

    @property
    def angle_limit(self) -> float:
        """Overhang angle limit in radians."""
        return math.radians(self.angle_limit_deg)

    @property
    def cone_angle(self) -> float:
        """Elevation threshold (radians) used by the cone angle constraint."""
        return math.pi / 2 - self.angle_limit

    def validate(self) -> List[str]:
        errors = []
        if not (0.0 < self.angle_limit_deg <= 90.0):
            errors.append(
                f"angle_limit_deg must be in (0, 90], got {self.angle_limit_deg}"
            )
        if int(self.grid_density) != self.grid_density or self.grid_density < 2:
            errors.append(f"grid_density must be an integer >= 2, got {self.grid_density}")
        if self.continuation_length <= 0:
            errors.append(
                f"continuation_length must be positive, got {self.continuation_length}"
            )
        if self.plate_snap_distance < 0:
            errors.append(
                f"plate_snap_distance must be non-negative, got {self.plate_snap_distance}"
            )
        if self.tolerance < 0:
            errors.append(f"tolerance must be non-negative, got {self.tolerance}")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SupportPolicy":
        return SupportPolicy(**{k: v for k, v in d.items() if k in SupportPolicy.__dataclass_fields__})


@dataclass
class StrutPolicy:
    """
    Policy for strut mesh synthesis.

    The strut radius grows with segment length and with its deviation from
    vertical: ``max(min_radius, diameter_coefficient * length * angle)``.

    JSON Schema:
    {
        "diameter_coefficient": float (> 0),
        "min_radius": float (model units, > 0)
    }
    """
    diameter_coefficient: float = 0.07
    min_radius: float = 1.0

    def validate(self) -> List[str]:
        errors = []
        if self.diameter_coefficient <= 0:
            errors.append(
                f"diameter_coefficient must be positive, got {self.diameter_coefficient}"
            )
        if self.min_radius <= 0:
            errors.append(f"min_radius must be positive, got {self.min_radius}")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "StrutPolicy":
        return StrutPolicy(**{k: v for k, v in d.items() if k in StrutPolicy.__dataclass_fields__})


@dataclass
class OperationReport:
    """
    Standard report structure for all pipeline stages.

    Every stage returns a report with requested vs effective policy,
    warnings, and stage-specific metadata.
    """
    operation: str
    success: bool
    requested_policy: Dict[str, Any]
    effective_policy: Dict[str, Any]
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


__all__ = [
    "validate_policy",
    "ensure_valid",
    "SupportPolicy",
    "StrutPolicy",
    "OperationReport",
]
