"""Resolve the kubeconfig path the cluster tooling should use."""

import os
from pathlib import Path
from typing import MutableMapping

KUBECONFIG_ENV_VAR = "KUBECONFIG"


def default_kubeconfig(explicit: str | None, home: str) -> str:
    """Return the explicit kubeconfig path, or ``<home>/.kube/config``.

    Args:
        explicit: Path supplied by flag or environment (may be empty)
        home: User home directory

    Returns:
        Kubeconfig path
    """
    if explicit:
        return explicit
    return os.path.join(home, ".kube", "config")


def resolve_kubeconfig(
    explicit: str | None = None,
    environ: MutableMapping[str, str] | None = None,
) -> str:
    """Resolve the kubeconfig path from a flag value and the environment.

    A flag value wins over ``KUBECONFIG``; with neither set the path under
    ``HOME`` is used.
    """
    if environ is None:
        environ = os.environ
    home = environ.get("HOME") or str(Path.home())
    return default_kubeconfig(explicit or environ.get(KUBECONFIG_ENV_VAR), home)


def export_kubeconfig(
    path: str, environ: MutableMapping[str, str] | None = None
) -> bool:
    """Publish the kubeconfig path through ``KUBECONFIG`` if it is unset.

    kubectl only reads the environment, so this is called once at startup,
    before any cluster access.

    Returns:
        True if the variable was written
    """
    if environ is None:
        environ = os.environ
    if environ.get(KUBECONFIG_ENV_VAR):
        return False
    environ[KUBECONFIG_ENV_VAR] = path
    return True
