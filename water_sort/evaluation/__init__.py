"""
Evaluation Package
==================

Contains the episode bank, baseline agent, and evaluation harness.
"""

from water_sort.evaluation.run_eval import evaluate_agent, load_seed_bank

__all__ = ["evaluate_agent", "load_seed_bank"]
