"""
Domain models — Pydantic types for the provisioning pipeline.

All models are re-exported here for convenient access:

    from provisioner.core.models import Capability, DistroProfile, InstallPlan
"""

from provisioner.core.models.capability import (
    BuildFromSource,
    BuildVariant,
    Capability,
    NativePackage,
    Probe,
    Remediation,
    ThirdPartyHelper,
)
from provisioner.core.models.editor_config import (
    ConfigDocument,
    EditorSection,
    LayoutSection,
    ToolchainSection,
)
from provisioner.core.models.plan import InstallPlan, PlanAction, UnresolvedCapability
from provisioner.core.models.profile import DistroProfile, Family
from provisioner.core.models.receipt import InstallReceipt
from provisioner.core.models.report import (
    CapabilityStatus,
    ProvisionWarning,
    VerificationReport,
)
from provisioner.core.models.settings import InstallerSettings

__all__ = [
    # capability.py
    "BuildFromSource",
    "BuildVariant",
    "Capability",
    # report.py
    "CapabilityStatus",
    # editor_config.py
    "ConfigDocument",
    # profile.py
    "DistroProfile",
    "EditorSection",
    "Family",
    # plan.py
    "InstallPlan",
    # receipt.py
    "InstallReceipt",
    # settings.py
    "InstallerSettings",
    "LayoutSection",
    "NativePackage",
    "PlanAction",
    "Probe",
    "ProvisionWarning",
    "Remediation",
    "ThirdPartyHelper",
    "ToolchainSection",
    "UnresolvedCapability",
    "VerificationReport",
]
