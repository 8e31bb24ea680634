"""IDS — Incremental Decision System.

Decides, for a stated intent, whether to REUSE an existing artifact, ADAPT
one, or justify creating a new one, and reviews past CREATE decisions.
"""

__version__ = "0.1.0"
