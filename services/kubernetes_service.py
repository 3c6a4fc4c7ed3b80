"""
services/kubernetes_service.py

Responsibility: Lists and watches Kubernetes Node resources and feeds every
change into the NodeRegistry. Connection is auto-detected: in-cluster service
account first, then a kubeconfig file as a fallback.
Does NOT: interpret node addresses, compute projections, or talk to DNS.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Coroutine
from typing import Any

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes import watch as k8s_watch
from kubernetes.client.exceptions import ApiException

from exceptions import KubernetesError
from services.node_registry import NodeRegistry

logger = logging.getLogger(__name__)

# HTTP 410 Gone: the watch's resourceVersion is too old and a relist is needed.
_GONE = 410


class NodeWatcher:
    """
    Drives a NodeRegistry from the Kubernetes node list/watch API.

    The kubernetes client is blocking, so the watch loop runs in its own
    daemon thread and hands each event to the registry on the asyncio loop
    with run_coroutine_threadsafe(...).result(). The thread waits for every
    registry operation (including its DNS notifications) to finish before
    reading the next event, so slow DNS updates backpressure the watch rather
    than piling up.

    On start, and whenever the watch expires, the full node list is fetched
    and handed to NodeRegistry.replace().

    Collaborators:
        - kubernetes Python client: CoreV1Api.list_node and watch.Watch
        - NodeRegistry: receives add/update/delete/replace calls
    """

    # Default path for the file-based fallback; matches the /config volume mount.
    _KUBECONFIG_FALLBACK = "/config/kubeconfig"

    def __init__(
        self,
        registry: NodeRegistry,
        loop: asyncio.AbstractEventLoop,
        *,
        kubeconfig: str = "",
        master: str = "",
        api: Any | None = None,
        watch_timeout: int = 300,
        retry_delay: float = 5.0,
    ) -> None:
        """
        Initialises the watcher.

        Args:
            registry: The registry to feed.
            loop: The event loop the registry lives on.
            kubeconfig: kubeconfig path; when empty, in-cluster credentials are
                tried first.
            master: Optional API server URL overriding the loaded config.
            api: Pre-built CoreV1Api (tests); skips credential loading.
            watch_timeout: Server-side timeout for each watch request, seconds.
            retry_delay: Pause before relisting after an unexpected error.
        """
        self._registry = registry
        self._loop = loop
        self._kubeconfig = kubeconfig
        self._master = master
        self._api = api
        self._watch_timeout = watch_timeout
        self._retry_delay = retry_delay
        self._stop = threading.Event()
        self._watch: k8s_watch.Watch | None = None
        self._thread: threading.Thread | None = None

    # ---------------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------------

    def start(self) -> None:
        """Starts the watch loop in a daemon thread."""
        self._thread = threading.Thread(target=self._run, name="node-watcher", daemon=True)
        self._thread.start()
        logger.info("Node watcher started.")

    def stop(self, timeout: float = 5.0) -> None:
        """Signals the watch loop to exit and waits briefly for the thread."""
        self._stop.set()
        if self._watch is not None:
            self._watch.stop()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Node watcher stopped.")

    # ---------------------------------------------------------------------------
    # Watch loop (runs in the watcher thread)
    # ---------------------------------------------------------------------------

    def relist(self, api: Any) -> str:
        """
        Lists all nodes and replaces the registry's table with them.

        Args:
            api: A CoreV1Api (or compatible) instance.

        Returns:
            The list's resourceVersion, the starting point for the watch.
        """
        node_list = api.list_node()
        logger.info("Listed %d node(s).", len(node_list.items))
        self._submit(self._registry.replace(node_list.items))
        return node_list.metadata.resource_version

    def watch(self, api: Any, resource_version: str) -> None:
        """
        Streams node events from `resource_version` until the server closes
        the watch or stop() is called.
        """
        self._watch = k8s_watch.Watch()
        for event in self._watch.stream(
            api.list_node,
            resource_version=resource_version,
            timeout_seconds=self._watch_timeout,
        ):
            if self._stop.is_set():
                break
            self.dispatch(event["type"], event["object"])

    def dispatch(self, event_type: str, node: Any) -> None:
        """
        Applies one watch event to the registry and waits for it to finish.

        Raises:
            ApiException: For ERROR events, so the loop relists.
        """
        if event_type == "ADDED":
            self._submit(self._registry.add(node))
        elif event_type == "MODIFIED":
            self._submit(self._registry.update(node))
        elif event_type == "DELETED":
            self._submit(self._registry.delete(node))
        elif event_type == "ERROR":
            code = node.get("code") if isinstance(node, dict) else None
            raise ApiException(status=code or 0, reason=f"watch error event: {node}")
        else:
            logger.debug("Ignoring watch event of type %s.", event_type)

    def _run(self) -> None:
        try:
            api = self._api or self._connect()
        except KubernetesError:
            logger.exception("Node watcher could not connect to the cluster.")
            return

        while not self._stop.is_set():
            try:
                resource_version = self.relist(api)
                self.watch(api, resource_version)
            except ApiException as exc:
                if exc.status == _GONE:
                    logger.info("Node watch expired (410 Gone); relisting.")
                    continue
                logger.error(
                    "Kubernetes API error %s: %s; retrying in %.0fs.",
                    exc.status,
                    exc.reason,
                    self._retry_delay,
                )
                self._stop.wait(self._retry_delay)
            except Exception:
                # NOTE: Broad catch keeps the watch alive across transient
                # network failures; the relist restores ground truth.
                logger.exception("Node watch failed; retrying in %.0fs.", self._retry_delay)
                self._stop.wait(self._retry_delay)

    def _submit(self, coro: Coroutine[Any, Any, None]) -> None:
        asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def _connect(self) -> Any:
        """
        Loads cluster credentials and builds a CoreV1Api.

        Returns:
            A CoreV1Api bound to the resolved configuration.

        Raises:
            KubernetesError: If no usable credentials are found.
        """
        configuration = k8s_client.Configuration()
        try:
            if self._kubeconfig:
                k8s_config.load_kube_config(
                    config_file=self._kubeconfig, client_configuration=configuration
                )
                logger.debug("Kubernetes: using kubeconfig at %s.", self._kubeconfig)
            else:
                self._load_default_config(configuration)
        except KubernetesError:
            raise
        except Exception as exc:
            raise KubernetesError(f"Could not load cluster credentials: {exc}") from exc

        if self._master:
            configuration.host = self._master
        return k8s_client.CoreV1Api(k8s_client.ApiClient(configuration))

    def _load_default_config(self, configuration: k8s_client.Configuration) -> None:
        try:
            k8s_config.load_incluster_config(client_configuration=configuration)
            logger.debug("Kubernetes: using in-cluster service account.")
        except k8s_config.ConfigException:
            try:
                k8s_config.load_kube_config(
                    config_file=self._KUBECONFIG_FALLBACK, client_configuration=configuration
                )
                logger.debug("Kubernetes: using kubeconfig at %s.", self._KUBECONFIG_FALLBACK)
            except Exception as exc:
                raise KubernetesError(
                    f"Could not load cluster credentials: no in-cluster SA and "
                    f"no kubeconfig at '{self._KUBECONFIG_FALLBACK}': {exc}"
                ) from exc
