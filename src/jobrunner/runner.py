# runner.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .context import Context
from .errors import (
    DeserializationError,
    JobRunnerError,
    PluginNotFoundError,
    ProvisioningError,
    ResourceAcquisitionError,
    SourceCheckoutError,
    TransportDisconnected,
    TransportError,
)
from .model import JobDefinition, JobStatus, SourceDescriptor, StageOutcome
from .notifier import Notifier
from .plugins.base import Builder, BuildHost, Provisioner, Transport
from .registry import CapabilityKind, CapabilityRegistry, default_registry
from .settings import Settings
from .stages import StageWalker

logger = logging.getLogger(__name__)

RULE = "=" * 79


# ----------------------------------------------------------------------
# Setup helpers
# ----------------------------------------------------------------------

def negotiate_transport(
    registry: CapabilityRegistry,
    build_host: BuildHost,
) -> Tuple[str, Callable[..., Transport]]:
    """
    Pick the transport plugin for a build host.

    The host lists the transports it accepts, most preferred first; the
    first one that is registered wins.

    Raises:
        TransportError: if none of the host's transports are registered
    """
    supported = build_host.transports()
    for name in supported:
        try:
            return name, registry.find(CapabilityKind.TRANSPORT, name)
        except PluginNotFoundError:
            continue
    raise TransportError(f"couldn't find a valid transport from {supported}")


def group_sources(
    sources: Iterable[Union[SourceDescriptor, Mapping[str, Any]]],
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Group source definitions by their type, keeping first-seen order.

    Raises:
        DeserializationError: if a source has no type
    """
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for source in sources:
        data = source.as_dict() if isinstance(source, SourceDescriptor) else dict(source)
        source_type = data.get("type")
        if not source_type:
            raise DeserializationError("no type given in source definition")
        groups.setdefault(source_type, []).append(data)
    return groups


# ----------------------------------------------------------------------
# Job runner
# ----------------------------------------------------------------------

class JobRunner:
    """
    Run one job: lease a build host, prepare it, check out sources, then
    walk the job's stages.

    Construction does all of the setup. If any of it fails the job is marked
    FAILED, whatever was acquired is released, and the original error is
    raised from the constructor. run() walks the stages, always releases
    the build host and transport, and returns True if the job succeeded.

    A runner owns its context, build host and transport exclusively; only
    the capability registry is shared between runners.
    """

    def __init__(
        self,
        job_id: Any,
        job_definition: Any,
        notifier: Notifier,
        *,
        registry: Optional[CapabilityRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.job_id = job_id
        self.notifier = notifier
        self.registry = registry if registry is not None else default_registry
        self.settings = settings if settings is not None else Settings.from_env()

        self._builder: Optional[Builder] = None
        self._build_host: Optional[BuildHost] = None
        self._transport: Optional[Transport] = None
        self._transport_closed = False
        self._host_released = False
        self._walker: Optional[StageWalker] = None
        self._has_run = False

        try:
            self.job = JobDefinition.load(job_definition)
        except DeserializationError as e:
            logger.error("couldn't un-serialize job for job ID %s: %s", job_id, e)
            raise

        # More is merged in as the job runs (build host facts)
        self.ctx = Context.for_job(job_id, self.job)
        environment = dict(self.job.environment)

        self._set_status(JobStatus.WAITING)

        try:
            self._builder = self._create_builder()

            self._write("Obtaining build host...")
            self._build_host = self._request_build_host(environment)

            self._set_status(JobStatus.STARTED)
            self.ctx.merge(self._build_host.context_info())

            # The notifier is the transport's log sink
            self._transport = self._create_transport(self._build_host)

            provisioner = self._create_provisioner(self._build_host)
            self._write(f"Preparing build host...\n{RULE}")
            self._provision(provisioner, environment)

            if self.job.sources:
                self.notifier.write(RULE)
                self._write("Checking out source...")
                self.checkout_sources(self.job.sources)
        except Exception as e:
            logger.error("job runner failed for job ID %s: %s", job_id, e)
            self._write(f"Job setup failed: {e}")
            self._finish(JobStatus.FAILED)
            self._release_resources()
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def build_host(self) -> Optional[BuildHost]:
        return self._build_host

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    @property
    def outcomes(self) -> List[StageOutcome]:
        """Stages executed so far, in order."""
        return list(self._walker.outcomes) if self._walker else []

    def run(self) -> bool:
        """
        Walk the stages from the job's first sequence entry.

        Returns:
            True if the job succeeded, False if it failed

        Raises:
            RuntimeError: if called more than once
            StageNotFoundError / DeserializationError / TransportError: the
                job is marked FAILED and resources are released first
        """
        if self._has_run:
            raise RuntimeError(f"job {self.job_id} has already been run")
        self._has_run = True

        self.notifier.write(RULE)
        self._write(f"Job started. Context: {self.ctx.redacted()}")

        self._walker = StageWalker(self.job, self._transport, self.ctx, self.notifier, self.registry)
        try:
            result = self._walker.walk(self.job.initial_stage)
        except Exception as e:
            logger.error("job %s aborted while running stages: %s", self.job_id, e)
            self._write(f"Job aborted: {e}")
            self._finish(JobStatus.FAILED)
            self._release_resources()
            raise

        # Either the stages succeeded, or the last edge taken was a failure
        # handler and nothing has cleared it since
        if result.failing:
            self._finish(JobStatus.FAILED)
            success = False
        else:
            self._finish(JobStatus.SUCCEEDED)
            success = True

        self._release_resources()
        return success

    def checkout_sources(self, sources: Iterable[Union[SourceDescriptor, Mapping[str, Any]]]) -> None:
        """
        Check out every source group; the first failing group aborts the job.

        Each group is handed to its plugin in one call so the plugin can
        batch its own network operations.
        """
        for source_type, group in group_sources(sources).items():
            source_cls = self.registry.find(CapabilityKind.SOURCE, source_type)
            try:
                success = source_cls().checkout(self._transport, self.ctx, group)
            except JobRunnerError:
                raise
            except Exception as e:
                raise SourceCheckoutError(f"failed to check out {source_type} source: {e}") from e
            if not success:
                raise SourceCheckoutError(f"failed to check out {source_type} source")

    # ------------------------------------------------------------------
    # Setup primitives
    # ------------------------------------------------------------------

    def _create_builder(self) -> Builder:
        builder_cls = self.registry.find(CapabilityKind.BUILDER, self.settings.builder)
        return builder_cls(registry=self.registry)

    def _request_build_host(self, environment: Dict[str, Any]) -> BuildHost:
        try:
            build_host = self._builder.get(environment)
        except JobRunnerError:
            raise
        except Exception as e:
            raise ResourceAcquisitionError(f"couldn't obtain a build host: {e}") from e
        if build_host is None:
            raise ResourceAcquisitionError("couldn't obtain a build host")
        return build_host

    def _create_transport(self, build_host: BuildHost) -> Transport:
        host, username, password, key = build_host.connect_info()
        logger.debug("create_transport: host: %s username: %s", host, username)

        name, transport_cls = negotiate_transport(self.registry, build_host)
        try:
            transport = transport_cls(host=host, user=username, password=password, key=key, log=self.notifier)
        except JobRunnerError:
            raise
        except Exception as e:
            raise TransportError(f"failed to connect the {name} transport to {host}: {e}") from e
        logger.debug("connected %s transport to %s", name, host)
        return transport

    def _create_provisioner(self, build_host: BuildHost) -> Provisioner:
        provisioner_cls = self.registry.find(CapabilityKind.PROVISIONER, build_host.distro or "")
        return provisioner_cls()

    def _provision(self, provisioner: Provisioner, environment: Dict[str, Any]) -> None:
        try:
            success = provisioner.prepare(self._transport, self._build_host, environment)
        except JobRunnerError:
            raise
        except Exception as e:
            raise ProvisioningError(f"failed to provision {self._build_host.name}: {e}") from e
        if not success:
            raise ProvisioningError(f"failed to provision {self._build_host.name}")

    # ------------------------------------------------------------------
    # Status & cleanup
    # ------------------------------------------------------------------

    def _write(self, message: str) -> None:
        self.notifier.write(f"{datetime.now()} : {message}")

    def _set_status(self, status: JobStatus) -> None:
        if self.notifier.status == status:
            return
        self.notifier.status = status
        self._write(f"Job status changed to {status.name}")

    def _finish(self, status: JobStatus) -> None:
        self._set_status(status)
        self.notifier.ended = datetime.now()

    def _release_resources(self) -> None:
        """
        Close the transport, then give the build host back. Each happens at
        most once. Only TransportDisconnected is swallowed.
        """
        try:
            self._close_transport()
        finally:
            self._release_host()

    def _close_transport(self) -> None:
        if self._transport is None or self._transport_closed:
            return
        self._transport_closed = True
        try:
            self._transport.close()
        except TransportDisconnected as e:
            logger.info("transport for job %s already disconnected: %s", self.job_id, e)

    def _release_host(self) -> None:
        if self._build_host is None or self._host_released:
            return
        self._host_released = True
        try:
            self._builder.release(self._transport, self._build_host)
        except TransportDisconnected as e:
            logger.info("build host for job %s already disconnected: %s", self.job_id, e)
