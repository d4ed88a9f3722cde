"""Diffusion coefficient models for chemical fields."""

from enum import Enum
from typing import Union
import numpy as np


class CoefficientModel(Enum):
    """How the coefficient between two adjacent cells depends on their gap."""
    INVERSE_SQUARE = "inverse_square"
    EXPONENTIAL = "exponential"


def diffusion_coefficients(model: CoefficientModel, rate: float,
                           current: np.ndarray,
                           neighbour: Union[np.ndarray, float]) -> np.ndarray:
    """
    Per-face diffusion coefficients between cells and one set of neighbours.

    INVERSE_SQUARE: rate^2 / (rate^2 + delta^2)
    EXPONENTIAL:    exp(-(delta / rate)^2)

    Large concentration gaps diffuse more slowly under both models. Pairs where
    both values are exactly zero get a coefficient of 0.
    """
    delta = np.abs(current - neighbour)

    if model is CoefficientModel.INVERSE_SQUARE:
        rate_sq = rate * rate
        coeff = rate_sq / (rate_sq + delta * delta)
    elif model is CoefficientModel.EXPONENTIAL:
        coeff = np.exp(-np.square(delta / rate))
    else:
        raise ValueError(f"Unknown coefficient model: {model}")

    both_empty = (current == 0.0) & (neighbour == 0.0)
    return np.where(both_empty, 0.0, coeff)
