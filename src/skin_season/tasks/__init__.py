"""
Batch utilities built on the analyzer.
"""
from .evaluation import EvaluationReport, EvaluationRunner, LabelSet, load_label_set

__all__ = ["EvaluationRunner", "EvaluationReport", "LabelSet", "load_label_set"]
