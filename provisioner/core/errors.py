"""
Fatal error taxonomy for the provisioning pipeline.

Anything raised from here aborts the run: the orchestrator releases
privilege and temporary directories on the way out, and the CLI turns
the exception into a red message and exit code 1. Recoverable
conditions are ProvisionWarning records, never exceptions.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base for every fatal provisioning error."""


class UnsupportedArchitectureError(ProvisionError):
    """The kernel reports a machine type outside {x86_64, aarch64}."""

    def __init__(self, machine: str):
        self.machine = machine
        super().__init__(
            f"Unsupported architecture: {machine or '<empty>'} "
            "(supported: x86_64, aarch64)"
        )


class PrerequisiteMissingError(ProvisionError):
    """A command the pipeline itself needs is not on PATH."""

    def __init__(self, command: str, purpose: str = ""):
        self.command = command
        msg = f"Required command not found: {command}"
        if purpose:
            msg += f" (needed for {purpose})"
        super().__init__(msg)


class PrivilegeError(ProvisionError):
    """Elevated rights could not be acquired."""


class ArtifactError(ProvisionError):
    """A mandatory artifact is missing or could not be placed."""


class SourceBuildError(ProvisionError):
    """A source build failed at a named step."""

    def __init__(self, step: str, message: str, output: str = ""):
        self.step = step
        self.output = output
        super().__init__(f"Source build failed at '{step}': {message}")


class VersionResolutionError(ProvisionError):
    """No release version could be determined and none was pinned."""


class ReleaseDownloadError(ProvisionError):
    """The release archive could not be fetched or unpacked."""


class ConfigError(ProvisionError):
    """Installer settings are invalid or missing."""
