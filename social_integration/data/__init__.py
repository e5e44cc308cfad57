from .storage import DataStorage
from .analysis import SimulationAnalyzer, integration_indicators, format_report

__all__ = ['DataStorage', 'SimulationAnalyzer', 'integration_indicators', 'format_report']
