from __future__ import annotations

from typing import List, Sequence

from pygame.math import Vector2

CLUSTER_DISTANCE = 30.0


def cluster_labels(positions: Sequence[Vector2], threshold: float = CLUSTER_DISTANCE) -> List[int]:
    """Label each position with the index of its connected component.

    Two positions are linked when their distance is strictly below
    ``threshold``; components are numbered in order of their first member.
    The traversal uses an explicit stack and rescans every position per visit,
    so it is O(n^2) and meant for occasional statistics, not per-step use.
    """
    count = len(positions)
    labels = [-1] * count
    threshold_sq = threshold * threshold
    next_label = 0
    for root in range(count):
        if labels[root] != -1:
            continue
        labels[root] = next_label
        stack = [root]
        while stack:
            current = positions[stack.pop()]
            cx = current.x
            cy = current.y
            for other in range(count):
                if labels[other] != -1:
                    continue
                pos = positions[other]
                dx = pos.x - cx
                dy = pos.y - cy
                if dx * dx + dy * dy < threshold_sq:
                    labels[other] = next_label
                    stack.append(other)
        next_label += 1
    return labels


def count_clusters(positions: Sequence[Vector2], threshold: float = CLUSTER_DISTANCE) -> int:
    labels = cluster_labels(positions, threshold)
    return max(labels) + 1 if labels else 0


def cluster_sizes(positions: Sequence[Vector2], threshold: float = CLUSTER_DISTANCE) -> List[int]:
    labels = cluster_labels(positions, threshold)
    sizes = [0] * (max(labels) + 1 if labels else 0)
    for label in labels:
        sizes[label] += 1
    return sizes
