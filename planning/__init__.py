"""Coverage modelling, gap analysis and request planning."""

from .catalog import Catalog, SkillNode, load_catalog
from .coverage_model import CoverageModel
from .gap_analyzer import GapAnalyzer, save_report
from .planner import PlanFilters, RequestPlanner, RoundShuffler

__all__ = [
    "Catalog",
    "SkillNode",
    "load_catalog",
    "CoverageModel",
    "GapAnalyzer",
    "save_report",
    "PlanFilters",
    "RequestPlanner",
    "RoundShuffler",
]
