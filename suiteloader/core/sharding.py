"""Shard partitioning of top-level project files.

WHY: Large runs are split across machines with ``--shard i/n``. Each shard
must get a disjoint, stable slice of the work, and the slices together
must cover everything exactly once.

HOW: Flatten the project → files map in order (projects in map order,
files in list order) and give shard i a contiguous range of it. The first
``N mod n`` shards take one extra file.

RULES:
- Only top-level projects are passed in; dependency projects are never
  partitioned
- Same input order and shard count → same partition on every run
- Projects left with no files in this shard are dropped from the result
- Result keeps the input's project order
"""

from __future__ import annotations

from typing import Dict, List

from suiteloader.models import ProjectConfig, ShardConfig


def filter_for_shard(
    shard: ShardConfig,
    files_by_project: Dict[ProjectConfig, List[str]],
) -> Dict[ProjectConfig, List[str]]:
    """Keep only the files that belong to the given shard."""
    shardable_total = sum(len(files) for files in files_by_project.values())

    shard_size = shardable_total // shard.total
    extra_one = shardable_total - shard_size * shard.total
    current_shard = shard.current - 1  # 0-based
    start = shard_size * current_shard + min(extra_one, current_shard)
    end = start + shard_size + (1 if current_shard < extra_one else 0)

    result: Dict[ProjectConfig, List[str]] = {}
    index = 0
    for project, files in files_by_project.items():
        shard_files: List[str] = []
        for file in files:
            if start <= index < end:
                shard_files.append(file)
            index += 1
        if shard_files:
            result[project] = shard_files
    return result
