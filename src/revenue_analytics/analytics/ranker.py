"""
Recommendation ranking: stable priority sort plus truncation.
"""

from ..models.views import Finding

DEFAULT_LIMIT = 5


def rank_findings(findings: list[Finding], limit: int = DEFAULT_LIMIT) -> tuple[list[Finding], int]:
    """
    Order findings high -> medium -> low and keep the first ``limit``.

    Findings of equal priority keep their input (rule evaluation) order.

    Returns:
        (ranked and truncated findings, total number of findings before truncation)
    """
    ranked = sorted(findings, key=lambda finding: finding.priority.rank)
    return ranked[:limit], len(findings)
