"""Decision engine — REUSE/ADAPT/CREATE policy and CREATE lifecycle review."""

from ids.engine.engine import IncrementalDecisionEngine

__all__ = ["IncrementalDecisionEngine"]
