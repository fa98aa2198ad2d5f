"""
Parallel Monte-Carlo tennis match simulator.
"""
from .errors import ConfigurationError, ExportError, SimulationInvariantError

__version__ = "0.1.0"

__all__ = ["ConfigurationError", "ExportError", "SimulationInvariantError", "__version__"]
