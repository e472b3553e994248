"""
Base Pydantic models for the boostersim beam-dynamics framework.

This module provides the foundational Pydantic model class with physics-specific
configuration and helpers for dictionary and YAML serialization.
"""

from pydantic import BaseModel, ConfigDict
from typing import Dict, Any
import numpy as np


class PhysicsBaseModel(BaseModel):
    """
    Base Pydantic model for all physics-related data structures in boostersim.

    This model provides:
    - Strict validation with assignment checking
    - Rejection of unknown fields
    - Numpy-aware conversion to plain Python containers

    Example:
        >>> class RFSettings(PhysicsBaseModel):
        ...     voltage_mv: float = Field(ge=0, description="Ring RF voltage in MV")
        ...     harmonic: int = Field(gt=0, description="Harmonic number")

        >>> rf = RFSettings(voltage_mv=0.5, harmonic=84)
        >>> rf.harmonic
        84
    """

    model_config = ConfigDict(
        # Validation settings
        validate_assignment=True,        # Validate on attribute assignment
        extra="forbid",                  # Reject unknown fields for safety
        use_enum_values=True,            # Use enum values in serialization

        # Type handling
        arbitrary_types_allowed=True,    # Allow numpy arrays in snapshots
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """
        Create instance from a plain dictionary.

        Args:
            data: Dictionary with model field values

        Returns:
            Instance of the model
        """
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to a dictionary.

        Returns:
            Dictionary representation of the model
        """
        return self.model_dump()

    def to_yaml_dict(self) -> Dict[str, Any]:
        """
        Convert to YAML-compatible dictionary.

        All numpy arrays and scalars are converted to Python lists and numbers,
        since ``yaml.safe_dump`` refuses numpy types.

        Returns:
            Dictionary suitable for YAML serialization
        """
        data = self.model_dump()

        def convert_numpy_types(obj):
            if isinstance(obj, np.ndarray):
                return obj.tolist()
            elif isinstance(obj, (np.float64, np.float32)):
                return float(obj)
            elif isinstance(obj, (np.int64, np.int32)):
                return int(obj)
            elif isinstance(obj, dict):
                return {k: convert_numpy_types(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [convert_numpy_types(item) for item in obj]
            return obj

        return convert_numpy_types(data)
