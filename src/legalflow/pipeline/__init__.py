"""
Style training pipeline.

Implements Style DNA training:
1. Sampling - Select representative excerpts of each document
2. Analysis - Deep style analysis per document
3. Synthesis - Reconcile analyses into one master profile

The orchestrator lives in ``legalflow.pipeline.orchestrator``; it depends on
the services, which in turn use the sampling functions exported here.
"""

from legalflow.pipeline.sampling import (
    CLAUSE_PATTERNS,
    extract_strategic_samples,
    format_samples,
)

__all__ = [
    "CLAUSE_PATTERNS",
    "extract_strategic_samples",
    "format_samples",
]
