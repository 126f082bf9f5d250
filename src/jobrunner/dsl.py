# dsl.py
"""
Helpers for writing job definitions in Python.

Everything here produces plain dicts in the serialized job format, ready for
json.dumps() or for handing straight to JobRunner:

    from jobrunner.dsl import job, stage, command, source

    payload = job(
        "example",
        stage("build", command("make"), on_failure="report"),
        stage("report", command("cat build.log")),
        sources=[source("git", url="https://example.com/app.git")],
    )
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------
# Step helper
# ---------------------------------------------------------------------

def command(
    cmd: str,
    *,
    args: Optional[List[str]] = None,
    env: Optional[Dict[str, str]] = None,
    path: Optional[str] = None,
) -> Dict[str, Any]:
    """A step running a command action."""
    action: Dict[str, Any] = {"type": "command", "cmd": cmd}
    if args is not None:
        action["args"] = list(args)
    if env:
        action["env"] = dict(env)
    if path is not None:
        action["path"] = path
    return {"action": action}


def action(type: str, **params: Any) -> Dict[str, Any]:
    """A step running any registered action."""
    return {"action": {"type": type, **params}}


# ---------------------------------------------------------------------
# Stage & source helpers
# ---------------------------------------------------------------------

def stage(
    name: str,
    *steps: Dict[str, Any],
    version: str = "1.0.0",
    on_success: Optional[str] = None,
    on_failure: Optional[str] = None,
) -> Dict[str, Any]:
    s: Dict[str, Any] = {"name": name, "version": version, "steps": list(steps)}
    if on_success is not None:
        s["on_success"] = on_success
    if on_failure is not None:
        s["on_failure"] = on_failure
    return s


def source(type: str, **fields: Any) -> Dict[str, Any]:
    return {"type": type, **fields}


# ---------------------------------------------------------------------
# Job helper
# ---------------------------------------------------------------------

def job(
    name: str,
    *stages: Dict[str, Any],
    version: str = "1.0.0",
    organization: Any = None,
    environment: Optional[Dict[str, Any]] = None,
    secrets: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
    sources: Optional[List[Dict[str, Any]]] = None,
    sequence: Optional[List[str]] = None,
    serialize_stages: bool = False,
) -> Dict[str, Any]:
    """
    Build a job payload. Stages are keyed by their name; the first stage
    given starts the job unless `sequence` says otherwise.
    """
    stage_map: Dict[str, Any] = {}
    for s in stages:
        if s["name"] in stage_map:
            raise ValueError(f"duplicate stage name: {s['name']}")
        stage_map[s["name"]] = json.dumps(s) if serialize_stages else s

    if sequence is None:
        sequence = [stages[0]["name"]] if stages else []

    return {
        "name": name,
        "version": version,
        "organization": organization,
        "environment": dict(environment or {}),
        "secrets": dict(secrets or {}),
        "context": dict(context or {}),
        "sources": list(sources or []),
        "stages": stage_map,
        "sequence": list(sequence),
    }


class JobBuilder:
    """
    Fluent alternative to job():

        payload = (
            JobBuilder("example")
            .with_env(os="ubuntu_jammy")
            .add_source("git", url="https://example.com/app.git")
            .add_stage(stage("test", command("make test")))
            .build()
        )
    """

    def __init__(self, name: str):
        self.name = name
        self._version = "1.0.0"
        self._organization: Any = None
        self._environment: Dict[str, Any] = {}
        self._secrets: Dict[str, Any] = {}
        self._context: Dict[str, Any] = {}
        self._sources: List[Dict[str, Any]] = []
        self._stages: List[Dict[str, Any]] = []
        self._sequence: Optional[List[str]] = None

    def version(self, version: str):
        self._version = version
        return self

    def organization(self, organization: Any):
        self._organization = organization
        return self

    def with_env(self, **env: Any):
        self._environment.update(env)
        return self

    def with_secrets(self, **secrets: Any):
        self._secrets.update(secrets)
        return self

    def with_context(self, **values: Any):
        self._context.update(values)
        return self

    def add_source(self, type: str, **fields: Any):
        self._sources.append(source(type, **fields))
        return self

    def add_stage(self, s: Dict[str, Any]):
        self._stages.append(s)
        return self

    def start_with(self, stage_name: str):
        self._sequence = [stage_name]
        return self

    def build(self) -> Dict[str, Any]:
        return job(
            self.name,
            *self._stages,
            version=self._version,
            organization=self._organization,
            environment=self._environment,
            secrets=self._secrets,
            context=self._context,
            sources=self._sources,
            sequence=self._sequence,
        )


def dumps(payload: Dict[str, Any]) -> str:
    """Serialize a payload the way JobRunner expects to receive it."""
    return json.dumps(payload)
