from .orchestrator import AnalysisOrchestrator, AnalysisResult
from .report import generate_analysis_report

__all__ = ["AnalysisOrchestrator", "AnalysisResult", "generate_analysis_report"]
