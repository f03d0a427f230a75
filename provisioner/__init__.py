"""masmide provisioner — installs masmide and its MASM toolchain on Linux."""

__version__ = "0.2.0"
