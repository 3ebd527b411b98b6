"""Push orchestration: remote and credential resolution, progress events, outcomes."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pygit2
from pygit2.enums import CredentialType

from .config import LeaveConfig
from .models import (
    PushEvent,
    PushOutcome,
    PushResult,
    ReferenceUpdate,
    SidebandMessage,
    TransferProgress,
)

if TYPE_CHECKING:
    from .core import RepositoryHandle

logger = logging.getLogger(__name__)

EventSink = Callable[[PushEvent], None]

DEFAULT_REMOTE = "origin"
DEFAULT_SSH_USER = "git"

# Substrings of engine or remote messages, matched case-insensitively.
NON_FAST_FORWARD_MARKERS = (
    "non-fast-forward",
    "non-fastforward",
    "fetch first",
    "not present locally",
)
AUTHENTICATION_MARKERS = ("authenticat", "credential", "publickey")

# Errors the engine raises for a failed transfer (pygit2 maps some libgit2
# codes to KeyError/ValueError).
TRANSPORT_ERRORS = (pygit2.GitError, OSError, KeyError, ValueError)


class CredentialsRejected(Exception):
    """The SSH key could not be used, or the remote asked for credentials again."""


def classify_push_error(message: str, auth_failed: bool = False) -> PushOutcome:
    """Map an engine error message to a push outcome."""
    lowered = message.lower()
    if auth_failed or any(marker in lowered for marker in AUTHENTICATION_MARKERS):
        return PushOutcome.AUTHENTICATION_FAILED
    if any(marker in lowered for marker in NON_FAST_FORWARD_MARKERS):
        return PushOutcome.REJECTED_NON_FAST_FORWARD
    return PushOutcome.NETWORK_OR_PROTOCOL_ERROR


def _discard(event: PushEvent) -> None:
    pass


class PushCallbacks(pygit2.RemoteCallbacks):
    """Turns the engine's push callbacks into ordered events for a sink.

    Credentials are answered once with the configured SSH key. The engine asks
    again when the key is refused; that second request fails the push as an
    authentication failure instead of looping.
    """

    def __init__(self, path: Path, ssh_key_path: Path, sink: EventSink | None = None):
        super().__init__()
        self.path = path
        self.ssh_key_path = ssh_key_path
        self.sink = sink or _discard
        self.username_requests = 0
        self.credential_requests = 0
        self.auth_failed = False
        self.rejections: dict[str, str] = {}
        self.updated_refs: list[str] = []

    def credentials(self, url, username_from_url, allowed_types):
        # SSH URLs without a user ask for the user name before the key.
        if allowed_types == CredentialType.USERNAME:
            self.username_requests += 1
            if self.username_requests > 1:
                self.auth_failed = True
                raise CredentialsRejected(f"{url} asked for a user name again")
            return pygit2.Username(username_from_url or DEFAULT_SSH_USER)

        self.credential_requests += 1
        if self.credential_requests > 1:
            self.auth_failed = True
            raise CredentialsRejected(f"SSH key {self.ssh_key_path} was rejected by {url}")
        if not allowed_types & CredentialType.SSH_KEY:
            self.auth_failed = True
            raise CredentialsRejected(f"{url} does not accept SSH key authentication")
        if not self.ssh_key_path.is_file():
            self.auth_failed = True
            raise CredentialsRejected(f"SSH key not found: {self.ssh_key_path}")

        logger.debug("Using SSH key %s for %s", self.ssh_key_path, url)
        username = username_from_url or DEFAULT_SSH_USER
        return pygit2.Keypair(username, None, str(self.ssh_key_path), "")

    def sideband_progress(self, string):
        self.sink(SidebandMessage(path=self.path, text=string))

    def transfer_progress(self, stats):
        self.sink(
            TransferProgress(
                path=self.path,
                received_objects=stats.received_objects,
                indexed_objects=stats.indexed_objects,
                total_objects=stats.total_objects,
                received_bytes=stats.received_bytes,
                indexed_deltas=stats.indexed_deltas,
                total_deltas=stats.total_deltas,
            )
        )

    def push_transfer_progress(self, objects_pushed, total_objects, bytes_pushed):
        self.sink(
            TransferProgress(
                path=self.path,
                received_objects=objects_pushed,
                total_objects=total_objects,
                received_bytes=bytes_pushed,
            )
        )

    def update_tips(self, refname, old, new):
        self.updated_refs.append(refname)
        self.sink(ReferenceUpdate(path=self.path, refname=refname, old=str(old), new=str(new)))

    def push_update_reference(self, refname, message):
        # A non-empty message means the remote refused this reference.
        if message:
            self.rejections[refname] = message


class PushOrchestrator:
    """Push the ahead branches of a repository to a resolved remote."""

    def __init__(
        self,
        config: LeaveConfig,
        connection_limit: threading.BoundedSemaphore | None = None,
    ):
        self.config = config
        self._connections = connection_limit or threading.BoundedSemaphore(
            config.max_connections
        )

    def resolve_remote(self, handle: RepositoryHandle) -> tuple[pygit2.Remote | None, str]:
        """Get the remote to push to, plus a warning when the fallback was used."""
        repo = handle.repo
        try:
            return repo.remotes[DEFAULT_REMOTE], ""
        except KeyError:
            pass

        names = list(repo.remotes.names())
        if not names:
            return None, ""

        warning = f"No remote named {DEFAULT_REMOTE} found, using {names[0]}"
        logger.info("%s in %s", warning, handle.root_path)
        return repo.remotes[names[0]], warning

    @staticmethod
    def build_refspecs(handle: RepositoryHandle, branches: list[str]) -> list[str]:
        """Refspecs pushing each branch to the ref it merges from."""
        refspecs = []
        for branch in branches:
            try:
                target = handle.repo.config[f"branch.{branch}.merge"]
            except KeyError:
                target = f"refs/heads/{branch}"
            refspecs.append(f"refs/heads/{branch}:{target}")
        return refspecs

    def push(
        self,
        handle: RepositoryHandle,
        branches: list[str],
        sink: EventSink | None = None,
    ) -> PushResult:
        """Push `branches` and classify what happened.

        Progress events are handed to `sink` while the transfer runs. Failures
        are returned as the result's outcome, never raised.
        """
        result = PushResult(path=handle.root_path, name=handle.name, outcome=PushOutcome.SKIPPED)
        if not branches:
            result.message = "No branches ahead of upstream"
            return result

        remote, warning = self.resolve_remote(handle)
        if remote is None:
            result.outcome = PushOutcome.NO_REMOTE_FOUND
            result.message = "No remote configured"
            return result
        result.remote = remote.name
        result.warning = warning

        callbacks = PushCallbacks(handle.root_path, self.config.ssh_key_path, sink)
        refspecs = self.build_refspecs(handle, branches)
        logger.info("Pushing %s to %s from %s", ", ".join(branches), remote.name, handle.root_path)

        try:
            with self._connections:
                remote.push(refspecs, callbacks=callbacks)
        except CredentialsRejected as e:
            result.outcome = PushOutcome.AUTHENTICATION_FAILED
            result.message = str(e)
        except TRANSPORT_ERRORS as e:
            result.outcome = classify_push_error(str(e), callbacks.auth_failed)
            result.message = str(e)
        else:
            result.updated_refs = list(callbacks.updated_refs)
            if callbacks.rejections:
                messages = [f"{ref}: {msg}" for ref, msg in callbacks.rejections.items()]
                result.message = "; ".join(messages)
                rejected_non_ff = any(
                    classify_push_error(msg) == PushOutcome.REJECTED_NON_FAST_FORWARD
                    for msg in callbacks.rejections.values()
                )
                if rejected_non_ff:
                    result.outcome = PushOutcome.REJECTED_NON_FAST_FORWARD
                else:
                    result.outcome = PushOutcome.NETWORK_OR_PROTOCOL_ERROR
            else:
                result.outcome = PushOutcome.SUCCEEDED
                result.message = f"Pushed {len(refspecs)} branch(es) to {remote.name}"

        if result.outcome != PushOutcome.SUCCEEDED:
            logger.debug("Push from %s failed: %s", handle.root_path, result.message)
        return result
