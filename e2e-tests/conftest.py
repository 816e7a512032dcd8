"""Pytest configuration and fixtures for EFS CSI E2E tests."""

import shutil
import uuid
from typing import Generator

import pytest

from efs_e2e.bootstrap import RESOLVED_CONFIG_KEY, SuitePlugin
from efs_e2e.config import RawConfiguration, ResolvedConfiguration, add_config_flags, assemble_config
from efs_e2e.environment import export_kubeconfig
from efs_e2e.errors import ConfigurationError
from efs_e2e.k8s_client import K8sClient
from efs_e2e.log_collector import LogCollector

EFS_CSI_DRIVER = "efs.csi.aws.com"


# -------------------------------------------------------------------------
# Configuration
# -------------------------------------------------------------------------


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add the EFS configuration options."""
    group = parser.getgroup("efs", "EFS CSI E2E configuration")
    add_config_flags(group.addoption)


@pytest.hookimpl(trylast=True)
def pytest_configure(config: pytest.Config) -> None:
    """Register markers and assemble the configuration when run directly.

    run_e2e.py stores its configuration through SuitePlugin before this
    runs; a plain ``pytest`` invocation assembles one from the options.
    """
    config.addinivalue_line("markers", "efs_filesystem: needs --file-system-id")

    if RESOLVED_CONFIG_KEY in config.stash:
        return

    try:
        resolved = assemble_config(RawConfiguration.from_namespace(config.option))
    except ConfigurationError as e:
        raise pytest.UsageError(str(e)) from e

    config.pluginmanager.register(SuitePlugin(resolved), "efs-suite")


# -------------------------------------------------------------------------
# Session-scoped Fixtures
# -------------------------------------------------------------------------


@pytest.fixture(scope="session")
def efs_config(pytestconfig: pytest.Config) -> ResolvedConfiguration:
    """Resolved configuration for this run.

    kubectl reads KUBECONFIG, so the resolved path is published the first
    time a test needs the configuration.
    """
    resolved = pytestconfig.stash[RESOLVED_CONFIG_KEY]
    export_kubeconfig(resolved.kubeconfig)
    return resolved


@pytest.fixture(scope="session")
def k8s(efs_config: ResolvedConfiguration) -> K8sClient:
    """K8s client bound to the EFS driver namespace."""
    if shutil.which("kubectl") is None:
        pytest.skip("kubectl not installed")

    client = K8sClient(namespace=efs_config.driver_namespace, kubeconfig=efs_config.kubeconfig)

    # Verify cluster access
    if not client.cluster_info():
        pytest.fail("Cannot connect to Kubernetes cluster")

    return client


@pytest.fixture(scope="session")
def csi_driver(k8s: K8sClient) -> dict:
    """Verify CSI driver is installed and return its info."""
    driver = k8s.get_csi_driver(EFS_CSI_DRIVER)
    if not driver:
        pytest.fail(f"CSI driver {EFS_CSI_DRIVER} not found")
    return driver


@pytest.fixture(scope="session")
def driver_pods(k8s: K8sClient, efs_config: ResolvedConfiguration) -> list[dict]:
    """EFS driver pods matching the configured label selectors."""
    return k8s.list_pods(efs_config.label_selectors)


@pytest.fixture(scope="session")
def efs_storage_class(
    k8s: K8sClient, efs_config: ResolvedConfiguration
) -> Generator[str, None, None]:
    """StorageClass provisioning access points on the configured file system."""
    if not efs_config.file_system_id:
        pytest.skip("--file-system-id not set")

    name = f"efs-e2e-{uuid.uuid4().hex[:8]}"
    k8s.apply(
        {
            "apiVersion": "storage.k8s.io/v1",
            "kind": "StorageClass",
            "metadata": {"name": name},
            "provisioner": EFS_CSI_DRIVER,
            "parameters": {
                "provisioningMode": "efs-ap",
                "fileSystemId": efs_config.file_system_id,
                "directoryPerms": "700",
            },
        }
    )

    yield name

    # Cleanup - try to delete but don't fail if already gone
    try:
        k8s.delete("storageclass", name, ignore_not_found=True)
    except Exception as e:
        print(f"Warning: Failed to delete StorageClass {name}: {e}")


# -------------------------------------------------------------------------
# Function-scoped Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def driver_logs(k8s: K8sClient, efs_config: ResolvedConfiguration) -> LogCollector:
    """Driver log collector that starts fresh for each test.

    SuitePlugin reads it back to attach driver errors to failed tests.
    """
    collector = LogCollector(k8s, efs_config.label_selectors)
    collector.start_collection()
    return collector
