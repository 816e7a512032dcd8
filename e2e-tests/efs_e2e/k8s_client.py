"""kubectl wrapper used by the EFS driver checks."""

import json
import logging
import subprocess
from typing import Mapping

import yaml

from .selectors import format_label_selectors

logger = logging.getLogger(__name__)


class K8sClient:
    """Runs kubectl against the EFS driver namespace."""

    def __init__(self, namespace: str = "kube-system", kubeconfig: str | None = None):
        """Initialize the K8s client.

        Args:
            namespace: Namespace of the EFS driver pods
            kubeconfig: Resolved kubeconfig path, passed to every kubectl call
        """
        self.namespace = namespace
        self.kubeconfig = kubeconfig

    def _kubectl(
        self,
        args: list[str],
        input_data: str | None = None,
        timeout: int = 60,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run kubectl, raising CalledProcessError on failure when ``check``."""
        cmd = ["kubectl"]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        cmd.extend(args)

        logger.debug("Running %s", " ".join(cmd))
        result = subprocess.run(
            cmd,
            input=input_data,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
        if check and result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode,
                cmd,
                output=result.stdout,
                stderr=result.stderr,
            )
        return result

    def _kubectl_json(self, args: list[str], timeout: int = 60) -> dict | list | None:
        """Run kubectl with ``-o json``; None when the object does not exist."""
        try:
            result = self._kubectl(args + ["-o", "json"], timeout=timeout)
            return json.loads(result.stdout)
        except subprocess.CalledProcessError as e:
            if "NotFound" in e.stderr or "not found" in e.stderr.lower():
                return None
            raise

    # -------------------------------------------------------------------------
    # Manifests
    # -------------------------------------------------------------------------

    def apply(self, manifest: dict) -> dict:
        """Apply a manifest such as the test StorageClass.

        Raises:
            RuntimeError: If kubectl rejects the manifest
        """
        try:
            result = self._kubectl(
                ["-n", self.namespace, "apply", "-f", "-", "-o", "json"],
                input_data=yaml.safe_dump(manifest),
            )
            return json.loads(result.stdout)
        except subprocess.CalledProcessError as e:
            raise RuntimeError(
                f"kubectl apply failed: {e.stderr or e.output or 'unknown error'}"
            ) from e

    def delete(
        self,
        kind: str,
        name: str,
        timeout: int = 120,
        ignore_not_found: bool = True,
    ) -> bool:
        """Delete an object and wait for it to go away.

        Returns:
            True if deleted, False if it was already gone
        """
        args = ["-n", self.namespace, "delete", kind, name, "--wait=true", "--timeout", f"{timeout}s"]
        if ignore_not_found:
            args.append("--ignore-not-found=true")

        try:
            self._kubectl(args, timeout=timeout + 10)
            return True
        except subprocess.CalledProcessError as e:
            if ignore_not_found and "not found" in e.stderr.lower():
                return False
            raise

    # -------------------------------------------------------------------------
    # Driver Pods
    # -------------------------------------------------------------------------

    def list_pods(self, selectors: Mapping[str, str]) -> list[dict]:
        """List pods in the driver namespace whose labels match every selector."""
        args = ["-n", self.namespace, "get", "pod", "-l", format_label_selectors(selectors)]
        result = self._kubectl_json(args)
        if result and "items" in result:
            return result["items"]
        return []

    def get_pod_logs(
        self,
        pod_name: str,
        container: str | None = None,
        since: str | None = "5m",
    ) -> str:
        """Logs of a driver pod, empty if kubectl could not fetch them."""
        args = ["-n", self.namespace, "logs", pod_name]
        if container:
            args.extend(["-c", container])
        if since:
            args.extend(["--since", since])

        result = self._kubectl(args, check=False)
        return result.stdout

    # -------------------------------------------------------------------------
    # Cluster-scoped Objects
    # -------------------------------------------------------------------------

    def cluster_info(self) -> bool:
        """Check if cluster is accessible."""
        try:
            self._kubectl(["cluster-info"], timeout=10)
            return True
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError):
            return False

    def get_csi_driver(self, name: str) -> dict | None:
        """The CSIDriver object, or None if the driver is not registered."""
        return self._kubectl_json(["get", "csidriver", name])

    def get_storage_class(self, name: str) -> dict | None:
        """A StorageClass, or None if it does not exist."""
        return self._kubectl_json(["get", "storageclass", name])
