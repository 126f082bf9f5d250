# context.py
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, Iterator, Mapping, Optional, Set

from .errors import InterpolationError

if TYPE_CHECKING:
    from .model import JobDefinition


REDACTED = "********"

# %{key} is replaced from the context, %% is a literal percent sign. Any
# other % is left untouched so shell constructs like `date +%Y` survive.
_PLACEHOLDER = re.compile(r"%%|%\{([^{}]+)\}")


class Context(Mapping[str, Any]):
    """
    The key/value environment threaded through one job.

    Values only ever get added or overridden (later merges win); nothing is
    removed while the job runs. Actions receive the runner's instance by
    reference, so facts merged later (build host details) are visible to
    every stage that runs afterwards.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})
        self._secret_keys: Set[str] = set()

    @classmethod
    def for_job(cls, job_id: Any, job: JobDefinition) -> Context:
        """
        Seed a context for a job: the job's own context mapping, then the
        job metadata, then environment, then secrets.
        """
        ctx = cls(job.context)
        ctx.merge({
            "job_id": job_id,
            "job_name": job.name,
            "job_version": job.version,
            "organization": job.organization,
        })
        ctx.merge(job.environment)
        ctx.merge(job.secrets, secret=True)
        return ctx

    def merge(self, values: Mapping[str, Any], *, secret: bool = False) -> None:
        for key, value in values.items():
            key = str(key)
            self._data[key] = value
            if secret:
                self._secret_keys.add(key)
            else:
                # A non-secret value overriding a secret one is no longer secret
                self._secret_keys.discard(key)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def is_secret(self, key: str) -> bool:
        return key in self._secret_keys

    def interpolate(self, template: str) -> str:
        """
        Resolve %{key} placeholders against the context.

        Raises:
            InterpolationError: if a placeholder names a key that isn't set
        """
        def _sub(match: re.Match) -> str:
            key = match.group(1)
            if key is None:
                return "%"
            if key not in self._data:
                raise InterpolationError(key)
            return str(self._data[key])

        return _PLACEHOLDER.sub(_sub, template)

    def redacted(self) -> Dict[str, Any]:
        """A plain copy safe for logging, with secret values masked."""
        return {
            k: (REDACTED if k in self._secret_keys else v)
            for k, v in self._data.items()
        }

    def __repr__(self) -> str:
        return f"Context({self.redacted()!r})"
