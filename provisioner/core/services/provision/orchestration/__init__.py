"""
L5 Orchestration — ``__init__.py`` re-exports the pipelines.
"""

from provisioner.core.services.provision.orchestration.orchestrator import (  # noqa: F401
    InstallOutcome,
    InstallRequest,
    run_install,
    source_mode,
)
from provisioner.core.services.provision.orchestration.uninstall import (  # noqa: F401
    InstalledState,
    RemovalStep,
    UninstallOutcome,
    collect_confirmations,
    execute_removal,
    inspect_installed_state,
    package_removal_hints,
    plan_removal,
    run_uninstall,
)
