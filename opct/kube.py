"""Kubernetes configuration helpers and the cluster model the tool works against."""

from __future__ import annotations

import copy
import dataclasses
import enum
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union


class KubeError(Exception):
    """An operation against the cluster failed."""


class NotFoundError(KubeError):
    """The requested object does not exist."""


class KubeconfigError(KubeError):
    """No usable kubeconfig could be found."""


def resolve_kubeconfig(env: Optional[Mapping[str, str]] = None, configured: str = "") -> str:
    """Path of the kubeconfig: KUBECONFIG first, then the configured value."""
    environ = os.environ if env is None else env
    path = environ.get("KUBECONFIG", "")
    if path:
        return path
    if not configured:
        raise KubeconfigError("--kubeconfig or KUBECONFIG environment variable must be set")
    if not Path(configured).exists():
        raise KubeconfigError(f"kubeconfig {configured!r} does not exists")
    return configured


def format_label_selector(labels: Mapping[str, str]) -> str:
    """Render labels as an equality selector with keys in sorted order."""
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels))


def parse_label_selector(selector: str) -> dict[str, Optional[str]]:
    """Parse 'k=v,k2==v2,k3' into a mapping; a bare key requires only existence."""
    result: dict[str, Optional[str]] = {}
    for term in selector.split(","):
        term = term.strip()
        if not term:
            continue
        if "!=" in term:
            raise ValueError(f"unsupported selector term {term!r}")
        if "==" in term:
            key, _, value = term.partition("==")
        elif "=" in term:
            key, _, value = term.partition("=")
        else:
            result[term] = None
            continue
        key = key.strip()
        if not key:
            raise ValueError(f"invalid selector term {term!r}")
        result[key] = value.strip()
    return result


Selector = Union[str, Mapping[str, Optional[str]], None]


def matches_selector(selector: Selector, labels: Mapping[str, str]) -> bool:
    """Whether labels satisfy the selector; an empty selector matches everything."""
    if not selector:
        return True
    terms = parse_label_selector(selector) if isinstance(selector, str) else selector
    for key, value in terms.items():
        if key not in labels:
            return False
        if value is not None and labels[key] != value:
            return False
    return True


@dataclass
class Taint:
    key: str
    value: str = ""
    effect: str = "NoSchedule"


@dataclass
class PodCondition:
    type: str
    status: str
    reason: str = ""


@dataclass
class Pod:
    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    phase: str = ""
    conditions: list[PodCondition] = field(default_factory=list)
    node_name: str = ""


@dataclass
class Node:
    name: str
    labels: dict[str, str] = field(default_factory=dict)
    taints: list[Taint] = field(default_factory=list)


@dataclass
class Namespace:
    name: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class OperatorCondition:
    type: str
    status: str


@dataclass
class ClusterOperator:
    name: str
    conditions: list[OperatorCondition] = field(default_factory=list)


@dataclass
class MachineConfigPool:
    name: str
    paused: bool = False


@dataclass
class ConfigMap:
    name: str
    namespace: str = ""
    data: dict[str, str] = field(default_factory=dict)


class EventType(enum.Enum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"


@dataclass
class WatchEvent:
    type: EventType
    object: Any


def _manifest_name(manifest: Mapping[str, Any]) -> str:
    try:
        name = manifest["metadata"]["name"]
    except (KeyError, TypeError) as exc:
        raise KubeError("object has no metadata.name") from exc
    if not name:
        raise KubeError("object has an empty metadata.name")
    return name


class InMemoryCluster:
    """A cluster kept in memory, with the operations the tool performs."""

    def __init__(self) -> None:
        self.namespaces: dict[str, Namespace] = {}
        self.nodes: dict[str, Node] = {}
        self.pods: dict[tuple[str, str], Pod] = {}
        self.cluster_roles: dict[str, dict] = {}
        self.cluster_role_bindings: dict[str, dict] = {}
        self.service_accounts: dict[tuple[str, str], dict] = {}
        self.config_maps: dict[tuple[str, str], ConfigMap] = {}
        self.cluster_operators: list[ClusterOperator] = []
        self.registry_management_state = "Managed"
        self.machine_config_pools: list[MachineConfigPool] = []
        self._pod_events: list[WatchEvent] = []

    # Namespaces

    def list_namespaces(self) -> list[Namespace]:
        return [copy.deepcopy(ns) for ns in self.namespaces.values()]

    def get_namespace(self, name: str) -> Namespace:
        try:
            return copy.deepcopy(self.namespaces[name])
        except KeyError:
            raise NotFoundError(f'namespaces "{name}" not found') from None

    def create_namespace(self, namespace: Namespace) -> Namespace:
        if namespace.name in self.namespaces:
            raise KubeError(f'namespaces "{namespace.name}" already exists')
        self.namespaces[namespace.name] = copy.deepcopy(namespace)
        return copy.deepcopy(namespace)

    def delete_namespace(self, name: str) -> None:
        if name not in self.namespaces:
            raise NotFoundError(f'namespaces "{name}" not found')
        del self.namespaces[name]
        for key in [k for k in self.pods if k[0] == name]:
            pod = self.pods.pop(key)
            self._pod_events.append(WatchEvent(EventType.DELETED, copy.deepcopy(pod)))
        for store in (self.service_accounts, self.config_maps):
            for key in [k for k in store if k[0] == name]:
                del store[key]

    def _require_namespace(self, namespace: str) -> None:
        if namespace not in self.namespaces:
            raise NotFoundError(f'namespaces "{namespace}" not found')

    # Pods

    def add_pod(self, pod: Pod) -> None:
        """Create the pod, or replace it when it already exists."""
        key = (pod.namespace, pod.name)
        event_type = EventType.MODIFIED if key in self.pods else EventType.ADDED
        self.pods[key] = copy.deepcopy(pod)
        self._pod_events.append(WatchEvent(event_type, copy.deepcopy(pod)))

    def list_pods(self, namespace: str, label_selector: Selector = None) -> list[Pod]:
        return [
            copy.deepcopy(pod)
            for (ns, _), pod in self.pods.items()
            if ns == namespace and matches_selector(label_selector, pod.labels)
        ]

    def watch_pods(self, namespace: str, label_selector: Selector = None) -> Iterator[WatchEvent]:
        """Replay pod events for matching pods in the order they happened."""
        for event in list(self._pod_events):
            pod = event.object
            if pod.namespace == namespace and matches_selector(label_selector, pod.labels):
                yield WatchEvent(event.type, copy.deepcopy(pod))

    # Nodes

    def add_node(self, node: Node) -> None:
        self.nodes[node.name] = copy.deepcopy(node)

    def list_nodes(self, label_selector: Selector = None) -> list[Node]:
        return [
            copy.deepcopy(node)
            for node in self.nodes.values()
            if matches_selector(label_selector, node.labels)
        ]

    def get_node(self, name: str) -> Node:
        try:
            return copy.deepcopy(self.nodes[name])
        except KeyError:
            raise NotFoundError(f'nodes "{name}" not found') from None

    def update_node(self, node: Node) -> Node:
        if node.name not in self.nodes:
            raise NotFoundError(f'nodes "{node.name}" not found')
        self.nodes[node.name] = copy.deepcopy(node)
        return copy.deepcopy(node)

    # RBAC

    def update_cluster_role(self, role: Mapping[str, Any]) -> dict:
        name = _manifest_name(role)
        self.cluster_roles[name] = copy.deepcopy(dict(role))
        return copy.deepcopy(self.cluster_roles[name])

    def delete_cluster_role(self, name: str) -> None:
        if self.cluster_roles.pop(name, None) is None:
            raise NotFoundError(f'clusterroles.rbac.authorization.k8s.io "{name}" not found')

    def update_cluster_role_binding(self, binding: Mapping[str, Any]) -> dict:
        name = _manifest_name(binding)
        self.cluster_role_bindings[name] = copy.deepcopy(dict(binding))
        return copy.deepcopy(self.cluster_role_bindings[name])

    def delete_cluster_role_binding(self, name: str) -> None:
        if self.cluster_role_bindings.pop(name, None) is None:
            raise NotFoundError(
                f'clusterrolebindings.rbac.authorization.k8s.io "{name}" not found'
            )

    # Namespaced objects

    def create_service_account(self, namespace: str, account: Mapping[str, Any]) -> dict:
        self._require_namespace(namespace)
        key = (namespace, _manifest_name(account))
        if key in self.service_accounts:
            raise KubeError(f'serviceaccounts "{key[1]}" already exists')
        self.service_accounts[key] = copy.deepcopy(dict(account))
        return copy.deepcopy(self.service_accounts[key])

    def create_config_map(self, namespace: str, config_map: ConfigMap) -> ConfigMap:
        self._require_namespace(namespace)
        key = (namespace, config_map.name)
        if key in self.config_maps:
            raise KubeError(f'configmaps "{config_map.name}" already exists')
        stored = dataclasses.replace(copy.deepcopy(config_map), namespace=namespace)
        self.config_maps[key] = stored
        return copy.deepcopy(stored)

    # OpenShift resources

    def list_cluster_operators(self) -> list[ClusterOperator]:
        return copy.deepcopy(self.cluster_operators)

    def image_registry_management_state(self) -> str:
        return self.registry_management_state

    def list_machine_config_pools(self) -> list[MachineConfigPool]:
        return copy.deepcopy(self.machine_config_pools)