"""Configuration assembly tests."""

import argparse
import dataclasses

import pytest

from efs_e2e.config import (
    DEFAULT_DRIVER_NAMESPACE,
    DEFAULT_REGION,
    RawConfiguration,
    ResolvedConfiguration,
    add_config_flags,
    assemble_config,
)
from efs_e2e.errors import InvalidSelectorSyntax

ENVIRON = {"HOME": "/home/u"}


def parse_flags(argv: list[str]) -> RawConfiguration:
    parser = argparse.ArgumentParser()
    add_config_flags(parser.add_argument)
    return RawConfiguration.from_namespace(parser.parse_args(argv))


class TestFlags:
    """Test flag registration."""

    def test_unsupplied_flags_are_none(self):
        assert parse_flags([]) == RawConfiguration()

    def test_all_flags(self):
        raw = parse_flags(
            [
                "--cluster-name", "e2e",
                "--region", "eu-west-1",
                "--file-system-id", "fs-0123",
                "--efs-driver-namespace", "efs",
                "--efs-driver-label-selectors", "app=efs-csi-node,tier=storage",
                "--kubeconfig", "/tmp/kubeconfig",
            ]
        )
        assert raw == RawConfiguration(
            cluster_name="e2e",
            region="eu-west-1",
            file_system_id="fs-0123",
            driver_namespace="efs",
            label_selectors="app=efs-csi-node,tier=storage",
            kubeconfig="/tmp/kubeconfig",
        )

    def test_from_namespace_ignores_missing_attributes(self):
        assert RawConfiguration.from_namespace(argparse.Namespace()) == RawConfiguration()


class TestAssembleConfig:
    """Test defaults and validation."""

    def test_defaults(self):
        """Omitted flags take their documented defaults."""
        config = assemble_config(RawConfiguration(), ENVIRON)

        assert config.cluster_name == ""
        assert config.region == DEFAULT_REGION == "us-west-2"
        assert config.file_system_id == ""
        assert config.driver_namespace == DEFAULT_DRIVER_NAMESPACE == "kube-system"
        assert dict(config.label_selectors) == {"app": "efs-csi-node"}
        assert config.kubeconfig == "/home/u/.kube/config"

    def test_supplied_values_kept(self):
        raw = RawConfiguration(
            cluster_name="e2e",
            region="eu-west-1",
            file_system_id="fs-0123",
            driver_namespace="efs",
            label_selectors="app=efs-csi-node,tier=storage",
            kubeconfig="/tmp/kubeconfig",
        )
        config = assemble_config(raw, ENVIRON)

        assert config.cluster_name == "e2e"
        assert config.region == "eu-west-1"
        assert config.file_system_id == "fs-0123"
        assert config.driver_namespace == "efs"
        assert dict(config.label_selectors) == {"app": "efs-csi-node", "tier": "storage"}
        assert config.label_selector == "app=efs-csi-node,tier=storage"
        assert config.kubeconfig == "/tmp/kubeconfig"

    def test_explicit_empty_region_not_defaulted(self):
        """Defaults only apply when a flag is absent."""
        config = assemble_config(RawConfiguration(region=""), ENVIRON)
        assert config.region == ""

    def test_kubeconfig_from_environment(self):
        config = assemble_config(
            RawConfiguration(), {"HOME": "/home/u", "KUBECONFIG": "/tmp/kubeconfig"}
        )
        assert config.kubeconfig == "/tmp/kubeconfig"

    @pytest.mark.parametrize("selectors", ["", "app=efs-csi-node,badtoken"])
    def test_malformed_selectors_fail(self, selectors: str):
        with pytest.raises(InvalidSelectorSyntax):
            assemble_config(RawConfiguration(label_selectors=selectors), ENVIRON)

    def test_result_is_immutable(self):
        config = assemble_config(RawConfiguration(), ENVIRON)

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.region = "eu-west-1"
        with pytest.raises(TypeError):
            config.label_selectors["tier"] = "storage"

    def test_selectors_required(self):
        """A resolved configuration cannot be built without selectors."""
        with pytest.raises(TypeError):
            ResolvedConfiguration(
                cluster_name="",
                region=DEFAULT_REGION,
                file_system_id="",
                driver_namespace=DEFAULT_DRIVER_NAMESPACE,
                kubeconfig="/home/u/.kube/config",
            )
