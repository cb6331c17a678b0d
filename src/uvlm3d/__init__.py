import logging

from .filament import filament_velocity, filament_velocities
from .panels import (
    SurfacePanel, WakePanel, EdgeMask,
    TRAILING_LENGTH,
    top_left, top_right, bottom_left, bottom_right, get_core_size, circulation_strength,
    flip_y, translate, reflect,
    panel_filaments, mirror_filaments, panel_induced_velocity,
    panels_from_corners, circulation, with_circulation, trailing_edge_corners,
)
from .influence import (
    edge_mask, FilamentSet, grid_filaments, filament_set_velocities,
    grid_induced_velocity, surface_induced_velocity,
    induced_velocities, influence_coefficients,
)
from .wake import (
    WakeGrid, wake_induced_velocity, wake_velocities,
    translate_wake_panel, translate_wake, translate_wake_inplace, shed_wake,
)
from .freestream import Freestream, Reference
from .api import NumbaConfig, NumericsConfig, WakeConfig, SimulationConfig
from .system import WakeSystem
from .logging_config import setup_logging
from .plotting import plot_wake

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "filament_velocity", "filament_velocities",
    "SurfacePanel", "WakePanel", "EdgeMask", "TRAILING_LENGTH",
    "top_left", "top_right", "bottom_left", "bottom_right", "get_core_size", "circulation_strength",
    "flip_y", "translate", "reflect",
    "panel_filaments", "mirror_filaments", "panel_induced_velocity",
    "panels_from_corners", "circulation", "with_circulation", "trailing_edge_corners",
    "edge_mask", "FilamentSet", "grid_filaments", "filament_set_velocities",
    "grid_induced_velocity", "surface_induced_velocity",
    "induced_velocities", "influence_coefficients",
    "WakeGrid", "wake_induced_velocity", "wake_velocities",
    "translate_wake_panel", "translate_wake", "translate_wake_inplace", "shed_wake",
    "Freestream", "Reference",
    "NumbaConfig", "NumericsConfig", "WakeConfig", "SimulationConfig",
    "WakeSystem",
    "setup_logging",
    "plot_wake",
]
