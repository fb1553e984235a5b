"""
Domain models for devbox.

    from devbox.core.models import Step, StepResult, RunReport, ProvisionConfig
"""

from devbox.core.models.config import (
    Features,
    GitSettings,
    PackageLists,
    ProvisionConfig,
    ToolchainVersions,
)
from devbox.core.models.report import RunReport
from devbox.core.models.state import ProvisionState, RunRecord, StepState
from devbox.core.models.step import Step, StepResult, StepStatus, never_satisfied

__all__ = [
    "Features",
    "GitSettings",
    "PackageLists",
    "ProvisionConfig",
    "ProvisionState",
    "RunRecord",
    "RunReport",
    "Step",
    "StepResult",
    "StepState",
    "StepStatus",
    "ToolchainVersions",
    "never_satisfied",
]
