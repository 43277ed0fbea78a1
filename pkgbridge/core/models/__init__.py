"""
Domain models — Pydantic types for pkgbridge.

All models are re-exported here for convenient access:

    from pkgbridge.core.models import PackageRecord, DeploymentConfig, Receipt
"""

from pkgbridge.core.models.action import Action, Receipt
from pkgbridge.core.models.deployment import (
    Credentials,
    DeploymentConfig,
    DeploymentLogEvent,
    DeploymentRequest,
    Severity,
)
from pkgbridge.core.models.package import SOURCE_ORDER, PackageRecord, PackageSource
from pkgbridge.core.models.settings import (
    DeploymentSettings,
    KeystoreSettings,
    ScriptPaths,
    SearchSettings,
    Settings,
)
from pkgbridge.core.models.template import GeneratedFile
from pkgbridge.core.models.workflow import WorkflowSnapshot, WorkflowState

__all__ = [
    # action.py
    "Action",
    # deployment.py
    "Credentials",
    "DeploymentConfig",
    "DeploymentLogEvent",
    "DeploymentRequest",
    "DeploymentSettings",
    # template.py
    "GeneratedFile",
    # settings.py
    "KeystoreSettings",
    # package.py
    "PackageRecord",
    "PackageSource",
    "Receipt",
    "SOURCE_ORDER",
    "ScriptPaths",
    "SearchSettings",
    "Settings",
    "Severity",
    # workflow.py
    "WorkflowSnapshot",
    "WorkflowState",
]
