"""
reconforge/engine/stages.py
The recon pipeline, declared as data.

Each entry is a StageSpec:
- kind TOOL: external binary, argument template with {hostname}/{input}/{output}
- kind BUILTIN: in-process step implemented by PipelineRunner (merge, parse, save)

Discovery stages run one after the other, in the order listed here.
"""

from __future__ import annotations

from typing import Tuple

from reconforge.base.config import ToolConfig
from reconforge.engine.models import StageKind, StageSpec

SUBFINDER_OUT = "subfinder.txt"
AMASS_OUT = "amass.txt"
MERGED_OUT = "all.txt"
HTTPX_OUT = "httpx.jsonl"
RESULTS_JSON = "results.json"
RESULTS_TXT = "results.txt"
META_JSON = "meta.json"

# Stages whose outputs feed the merge step
DISCOVERY_STAGES = ("subfinder", "amass")


def build_stages(tools: ToolConfig) -> Tuple[StageSpec, ...]:
    return (
        StageSpec(
            name="subfinder",
            kind=StageKind.TOOL,
            binary=tools.subfinder_bin,
            args=("-d", "{hostname}", "-silent", "-o", "{output}"),
            timeout=tools.subfinder_timeout,
            output=SUBFINDER_OUT,
            label="subfinder (passive discovery)",
            estimate_minutes=1.5,
        ),
        StageSpec(
            name="amass",
            kind=StageKind.TOOL,
            binary=tools.amass_bin,
            args=("enum", "-passive", "-d", "{hostname}", "-o", "{output}"),
            timeout=tools.amass_timeout,
            output=AMASS_OUT,
            label="amass (passive)",
            estimate_minutes=2.5,
        ),
        StageSpec(
            name="merge",
            kind=StageKind.BUILTIN,
            output=MERGED_OUT,
            label="merging and deduplicating subdomain lists",
            estimate_minutes=0.2,
        ),
        StageSpec(
            name="httpx",
            kind=StageKind.TOOL,
            binary=tools.httpx_bin,
            args=("-l", "{input}", "-silent", "-status-code", "-title", "-cl", "-json", "-o", "{output}"),
            timeout=tools.httpx_timeout,
            input=MERGED_OUT,
            output=HTTPX_OUT,
            label="httpx (probe HTTP(s) and collect status codes)",
            estimate_minutes=2.0,
        ),
        StageSpec(
            name="parse_httpx",
            kind=StageKind.BUILTIN,
            input=HTTPX_OUT,
            label="parsing httpx output into JSON",
            estimate_minutes=0.05,
        ),
        StageSpec(
            name="save_results",
            kind=StageKind.BUILTIN,
            label="saving results and metadata",
            estimate_minutes=0.02,
        ),
    )
