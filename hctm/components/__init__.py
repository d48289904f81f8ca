"""
Components Package for the HCTM tooling

Components implement the discovery-processing-housekeeping pattern for a
single NVMe device.
"""

from .thermal_component import ThermalManagementComponent

__all__ = ['ThermalManagementComponent']
