"""
Dependency Graph.

Records plugin -> dependency edges and computes a safe installation order.

Key features:
- Every referenced id becomes a node, even without dependencies
- Post-order depth-first traversal: dependencies precede their dependents
- Cycles detected lazily during traversal, naming both endpoints
"""


class DependencyError(Exception):
    """Base exception for dependency-related errors."""

    pass


class CyclicDependencyError(DependencyError):
    """Raised when traversal revisits a node on the active path."""

    def __init__(self, parent: str | None, node: str):
        self.parent = parent
        self.node = node
        super().__init__(f"Cyclic dependency from {parent} to {node}")


class DependencyGraph:
    """
    Directed graph of plugin ids.

    Example:
        graph = DependencyGraph()
        graph.add('app', 'core')
        graph.get_chain('app')  # ['core']
    """

    def __init__(self):
        self._graph: dict[str, set[str]] = {}
        # Insertion order per node keeps chains deterministic
        self._order: dict[str, list[str]] = {}

    def add(self, plugin_id: str, dependency_id: str) -> None:
        """
        Register an edge; both endpoints become known nodes.

        Args:
            plugin_id: Dependent plugin
            dependency_id: Plugin it depends on
        """
        for node in (plugin_id, dependency_id):
            if node not in self._graph:
                self._graph[node] = set()
                self._order[node] = []

        if dependency_id not in self._graph[plugin_id]:
            self._graph[plugin_id].add(dependency_id)
            self._order[plugin_id].append(dependency_id)

    def has_node(self, plugin_id: str) -> bool:
        return plugin_id in self._graph

    def dependencies_of(self, plugin_id: str) -> list[str]:
        """Direct dependencies of a node (empty for unknown ids)."""
        return list(self._order.get(plugin_id, []))

    def dependents_of(self, plugin_id: str) -> list[str]:
        """Nodes that directly depend on plugin_id."""
        return [node for node, deps in self._order.items() if plugin_id in deps]

    def get_chain(self, plugin_id: str) -> list[str]:
        """
        Compute the installation order for a plugin's dependencies.

        Each entry's own dependencies appear before it, with no duplicates.
        The plugin itself is not part of the chain. Unknown ids and nodes
        without dependencies yield an empty chain.

        Args:
            plugin_id: Plugin to resolve

        Returns:
            Dependency ids in installation order

        Raises:
            CyclicDependencyError: If a cycle is reachable from plugin_id
        """
        visited: set[str] = set()
        on_path: set[str] = set()
        result: list[str] = []

        def traverse(node: str, parent: str | None = None) -> None:
            if node in on_path:
                raise CyclicDependencyError(parent, node)

            if node not in self._graph:
                return

            on_path.add(node)
            for dep in self._order[node]:
                if dep not in visited:
                    traverse(dep, node)
                    result.append(dep)
                    visited.add(dep)
            on_path.discard(node)

        traverse(plugin_id)
        return result
