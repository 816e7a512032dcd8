"""Command line flags and configuration assembly for the EFS CSI E2E suite.

The same flag table is registered on the runner's ``argparse`` parser and on
pytest's option parser. Flags default to ``None`` so the assembler can tell
"not supplied" apart from an explicit value and apply defaults in one place.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, MutableMapping

from .environment import resolve_kubeconfig
from .selectors import format_label_selectors, parse_label_selectors

DEFAULT_REGION = "us-west-2"
DEFAULT_DRIVER_NAMESPACE = "kube-system"
DEFAULT_LABEL_SELECTORS = "app=efs-csi-node"

# (flag, dest, help)
CONFIG_FLAGS = (
    ("--cluster-name", "cluster_name", "the cluster name"),
    ("--region", "region", f"the region (default: {DEFAULT_REGION})"),
    ("--file-system-id", "file_system_id", "the id of an existing file system"),
    (
        "--efs-driver-namespace",
        "driver_namespace",
        f"namespace of EFS driver pods (default: {DEFAULT_DRIVER_NAMESPACE})",
    ),
    (
        "--efs-driver-label-selectors",
        "label_selectors",
        "comma-separated label selectors for EFS driver pods, follows the form "
        f"key1=value1,key2=value2 (default: {DEFAULT_LABEL_SELECTORS})",
    ),
    (
        "--kubeconfig",
        "kubeconfig",
        "path to kubeconfig file (default: $KUBECONFIG or ~/.kube/config)",
    ),
)


def add_config_flags(add_option: Callable[..., Any]) -> None:
    """Register the configuration flags.

    Args:
        add_option: ``ArgumentParser.add_argument`` or ``pytest.Parser.addoption``
    """
    for flag, dest, help_text in CONFIG_FLAGS:
        add_option(flag, action="store", dest=dest, default=None, help=help_text)


@dataclass(frozen=True)
class RawConfiguration:
    """Unvalidated flag values. ``None`` means the flag was not supplied."""

    cluster_name: str | None = None
    region: str | None = None
    file_system_id: str | None = None
    driver_namespace: str | None = None
    label_selectors: str | None = None
    kubeconfig: str | None = None

    @classmethod
    def from_namespace(cls, namespace: Any) -> "RawConfiguration":
        """Build from an argparse namespace (or ``pytest.Config.option``)."""
        return cls(**{dest: getattr(namespace, dest, None) for _, dest, _ in CONFIG_FLAGS})


@dataclass(frozen=True)
class ResolvedConfiguration:
    """Validated configuration shared read-only by the whole run."""

    cluster_name: str
    region: str
    file_system_id: str
    driver_namespace: str
    kubeconfig: str
    label_selectors: Mapping[str, str]

    @property
    def label_selector(self) -> str:
        """Selectors in ``kubectl -l`` form."""
        return format_label_selectors(self.label_selectors)


def _default(value: str | None, default: str) -> str:
    return default if value is None else value


def assemble_config(
    raw: RawConfiguration,
    environ: MutableMapping[str, str] | None = None,
) -> ResolvedConfiguration:
    """Turn raw flag values into a resolved configuration.

    Args:
        raw: Flag values
        environ: Environment used to resolve the kubeconfig (default: os.environ)

    Returns:
        Frozen configuration

    Raises:
        InvalidSelectorSyntax: If the combined label selectors are malformed
    """
    selectors = parse_label_selectors(
        _default(raw.label_selectors, DEFAULT_LABEL_SELECTORS)
    )
    return ResolvedConfiguration(
        cluster_name=_default(raw.cluster_name, ""),
        region=_default(raw.region, DEFAULT_REGION),
        file_system_id=_default(raw.file_system_id, ""),
        driver_namespace=_default(raw.driver_namespace, DEFAULT_DRIVER_NAMESPACE),
        kubeconfig=resolve_kubeconfig(raw.kubeconfig, environ),
        label_selectors=MappingProxyType(selectors),
    )
