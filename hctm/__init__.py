"""
hctm - NVMe Host Controlled Thermal Management tooling

This package drives nvme-cli through the discovery-processing-housekeeping
pattern to read, lower and restore the TMT1/TMT2 throttling thresholds of an
NVMe SSD.
"""

from .base_component import BaseComponent

__all__ = ['BaseComponent']
__version__ = '1.0.0'
