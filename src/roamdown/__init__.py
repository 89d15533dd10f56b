"""Export an org-roam knowledge graph to a flat directory of Markdown files.

Two passes over the node table:
    1. patch: rewrite [[id:<ID>][text]] links in every .org file in place to
       [[./<Target Title>.md][text]]
    2. export: run the org exporter once per node into <target_dir>/<Title>.md,
       skipping files that already exist

Layout:
    roamdown.toml          # optional settings (db, target_dir, converter)
    <target_dir>/
        <Title>.md         # one file per org-roam node
"""

from roamdown.config import RoamdownConfig, load_config
from roamdown.db import load_nodes
from roamdown.index import NodeIndex
from roamdown.models import Node
from roamdown.pipeline import Pipeline, PipelineResult, run_pipeline

__all__ = [
    "Node",
    "NodeIndex",
    "Pipeline",
    "PipelineResult",
    "RoamdownConfig",
    "load_config",
    "load_nodes",
    "run_pipeline",
]
