"""
L4 Execution — ``__init__.py`` re-exports every side-effecting operation.

Everything here touches the system: subprocesses, the filesystem,
the network.
"""

from provisioner.core.services.provision.execution.artifacts import (  # noqa: F401
    Artifact,
    ArtifactGlob,
    InstallResult,
    install_artifacts,
    place_file,
    remove_path,
)
from provisioner.core.services.provision.execution.config_materializer import (  # noqa: F401
    MaterializeResult,
    detect_linker,
    install_templates,
    load_config,
    materialize,
)
from provisioner.core.services.provision.execution.plan_execution import (  # noqa: F401
    ExecutionResult,
    execute_plan,
)
from provisioner.core.services.provision.execution.privilege import (  # noqa: F401
    PrivilegeBroker,
    PrivilegeToken,
)
from provisioner.core.services.provision.execution.release import (  # noqa: F401
    StagedRelease,
    release_archive_url,
    resolve_version,
    stage_release,
)
from provisioner.core.services.provision.execution.source_build import (  # noqa: F401
    build_from_source,
    build_in_tree,
)
from provisioner.core.services.provision.execution.subprocess_runner import (  # noqa: F401
    command_output,
    run_command,
)
