"""
Transitive Closure Resolver

Computes everything that would be dragged down by removing a package.
"""

from collections import deque

from pkgimpact.dependency_graph import DependencyGraph


def closure_of(graph: DependencyGraph, root: str) -> set[str]:
    """
    Breadth-first traversal from root along dependents edges.

    The visited set makes the traversal terminate on cyclic graphs and
    ensures each package is expanded once. The result always contains root.
    Discovery order is not significant; callers that need stable output
    must sort the result.
    """
    visited = {root}
    queue = deque([root])

    while queue:
        current = queue.popleft()
        for dependent in graph.dependents_of(current):
            if dependent not in visited:
                visited.add(dependent)
                queue.append(dependent)

    return visited

