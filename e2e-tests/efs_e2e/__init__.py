# EFS CSI E2E Test Library
"""Configuration and bootstrap for the EFS CSI driver E2E suite."""

from .bootstrap import PytestEngine, RunIdentity, SuiteBootstrapper
from .config import RawConfiguration, ResolvedConfiguration, assemble_config
from .errors import ConfigurationError, InvalidSelectorSyntax, SetupError
from .k8s_client import K8sClient
from .log_collector import LogCollector
from .selectors import parse_label_selectors

__all__ = [
    "ConfigurationError",
    "InvalidSelectorSyntax",
    "K8sClient",
    "LogCollector",
    "PytestEngine",
    "RawConfiguration",
    "ResolvedConfiguration",
    "RunIdentity",
    "SetupError",
    "SuiteBootstrapper",
    "assemble_config",
    "parse_label_selectors",
]
