"""Renders the synthetic compilation workload description.

The description names every release to compile and the stemcell to compile
against. It deploys no instances: applying it is only what makes the
platform compile the releases so they can be exported.
"""

from __future__ import annotations

from typing import Any

import yaml

from stemforge.models.releases import BaseImageTarget, ReleaseIdentity

STEMCELL_ALIAS = "default"


def generate_workload(
    name: str, releases: list[ReleaseIdentity], target: BaseImageTarget
) -> dict[str, Any]:
    """Build the workload description as a plain dict."""
    return {
        "name": name,
        "releases": [{"name": r.name, "version": r.version} for r in releases],
        "stemcells": [
            {
                "alias": STEMCELL_ALIAS,
                "os": target.operating_system,
                "version": target.version,
            }
        ],
        "instance_groups": [],
        "update": {
            "canaries": 1,
            "max_in_flight": 1,
            "canary_watch_time": "1000-1001",
            "update_watch_time": "1000-1001",
        },
    }


def render_workload(
    name: str, releases: list[ReleaseIdentity], target: BaseImageTarget
) -> str:
    """Render the workload description as YAML text."""
    return yaml.safe_dump(
        generate_workload(name, releases, target), sort_keys=False
    )
