"""
Remote document gateway over the GitHub contents and actions APIs.

Every write is a single conditional attempt guarded by the blob sha the
caller captured at read time. A stale or missing sha for an existing file
comes back as ConflictError and the remote file is left untouched. Nothing
here retries.
"""

import base64
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from sitewriter.core.config import settings
from sitewriter.core.errors import ConflictError, DispatchError, NotFoundError, RemoteError
from sitewriter.core.metrics import remote_requests_total
from sitewriter.core.tracing import start_span
from sitewriter.models.content import CollectionSnapshot, DirectoryEntry, FileSnapshot

logger = logging.getLogger("sitewriter")

GITHUB_TIMEOUT_SECONDS = 15


def encode_body(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_body(encoded: str) -> str:
    # The contents API wraps base64 at 60 columns
    return base64.b64decode("".join(encoded.split())).decode("utf-8")


def _is_conflict(response: httpx.Response) -> bool:
    if response.status_code == 409:
        return True
    if response.status_code == 422:
        return "sha" in response.text.lower()
    return False


class RemoteDocumentGateway:
    """Read, write and dispatch against one repository with one access token."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        *,
        branch: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = GITHUB_TIMEOUT_SECONDS,
    ):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.branch = branch or settings.GITHUB_BRANCH
        self.api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def for_repo(self, repo: str) -> "RemoteDocumentGateway":
        """Same credentials, different repository (e.g. the resources repo)."""
        return RemoteDocumentGateway(
            self.token,
            self.owner,
            repo,
            branch=self.branch,
            api_url=self.api_url,
            transport=self._transport,
            timeout=self._timeout,
        )

    # Transport ---------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(path.strip('/'), safe='/')}"

    async def _request(self, op: str, method: str, url: str, **kwargs) -> httpx.Response:
        with start_span("github." + op, {"github.repo": self.repo, "github.url": url}):
            try:
                async with httpx.AsyncClient(
                    base_url=self.api_url,
                    headers=self._headers(),
                    timeout=self._timeout,
                    transport=self._transport,
                ) as client:
                    return await client.request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                remote_requests_total.inc(labels={"op": op, "outcome": "transport_error"})
                logger.warning("github.transport_error", extra={"path": url, "error_code": "remote_error"})
                raise RemoteError(f"GitHub unreachable during {op}: {exc}") from exc

    def _record(self, op: str, outcome: str) -> None:
        remote_requests_total.inc(labels={"op": op, "outcome": outcome})

    def _unexpected(self, op: str, response: httpx.Response) -> RemoteError:
        self._record(op, "error")
        return RemoteError(
            f"GitHub {op} failed: {response.status_code}",
            details={"status": response.status_code, "body": response.text[:500]},
        )

    # Files -------------------------------------------------------------
    async def read_file(self, path: str) -> FileSnapshot:
        response = await self._request("read_file", "GET", self._contents_url(path), params={"ref": self.branch})
        if response.status_code == 404:
            self._record("read_file", "not_found")
            raise NotFoundError(f"{path} not found")
        if response.status_code != 200:
            raise self._unexpected("read_file", response)

        payload = response.json()
        if not isinstance(payload, dict) or payload.get("type", "file") != "file":
            raise self._unexpected("read_file", response)

        # Files over 1 MB come back without inline content
        if payload.get("encoding") == "none":
            body = await self._read_blob(path, payload["sha"])
        elif payload.get("encoding", "base64") == "base64":
            body = decode_body(payload.get("content", ""))
        else:
            raise self._unexpected("read_file", response)
        self._record("read_file", "ok")
        return FileSnapshot(path=path, body=body, lock_token=payload["sha"])

    async def _read_blob(self, path: str, sha: str) -> str:
        """Raw bytes of exactly the blob `sha`, so body and lock token always agree."""
        response = await self._request(
            "read_blob",
            "GET",
            f"/repos/{self.owner}/{self.repo}/git/blobs/{sha}",
            headers={"Accept": "application/vnd.github.raw"},
        )
        if response.status_code != 200:
            raise self._unexpected("read_blob", response)
        try:
            body = response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RemoteError(f"{path} is not UTF-8 text") from exc
        self._record("read_blob", "ok")
        logger.info("github.large_file_read", extra={"path": path})
        return body

    async def write_file(
        self,
        path: str,
        body: str,
        lock_token: Optional[str] = None,
        message: Optional[str] = None,
    ) -> str:
        """Create (no token) or replace (token) a file. Returns the new sha."""
        request_body: Dict[str, Any] = {
            "message": message or f"Update {path}",
            "content": encode_body(body),
            "branch": self.branch,
        }
        if lock_token:
            request_body["sha"] = lock_token

        response = await self._request("write_file", "PUT", self._contents_url(path), json=request_body)
        if _is_conflict(response):
            self._record("write_file", "conflict")
            logger.info("github.conflict", extra={"path": path, "error_code": "conflict"})
            raise ConflictError(details={"path": path})
        if response.status_code not in (200, 201):
            raise self._unexpected("write_file", response)

        self._record("write_file", "ok")
        return response.json()["content"]["sha"]

    async def delete_file(self, path: str, lock_token: str, message: Optional[str] = None) -> None:
        request_body = {
            "message": message or f"Delete {path}",
            "sha": lock_token,
            "branch": self.branch,
        }
        response = await self._request("delete_file", "DELETE", self._contents_url(path), json=request_body)
        if response.status_code == 404:
            self._record("delete_file", "not_found")
            raise NotFoundError(f"{path} not found")
        if _is_conflict(response):
            self._record("delete_file", "conflict")
            raise ConflictError(details={"path": path})
        if response.status_code != 200:
            raise self._unexpected("delete_file", response)
        self._record("delete_file", "ok")

    # Collections -------------------------------------------------------
    async def read_collection(self, path: str) -> CollectionSnapshot:
        try:
            snapshot = await self.read_file(path)
        except NotFoundError:
            return CollectionSnapshot(path=path, items=[], lock_token=None)

        try:
            items = json.loads(snapshot.body) if snapshot.body.strip() else []
        except ValueError as exc:
            raise RemoteError(f"{path} is not valid JSON") from exc
        if not isinstance(items, list):
            raise RemoteError(f"{path} does not hold a JSON array")
        return CollectionSnapshot(path=path, items=items, lock_token=snapshot.lock_token)

    async def write_collection(
        self,
        path: str,
        items: List[Dict[str, Any]],
        lock_token: Optional[str] = None,
        message: Optional[str] = None,
    ) -> str:
        body = json.dumps(items, indent=2, ensure_ascii=False)
        return await self.write_file(path, body, lock_token=lock_token, message=message)

    # Directories -------------------------------------------------------
    async def list_directory(self, path: str) -> List[DirectoryEntry]:
        response = await self._request("list_directory", "GET", self._contents_url(path), params={"ref": self.branch})
        if response.status_code == 404:
            self._record("list_directory", "not_found")
            return []
        if response.status_code != 200:
            raise self._unexpected("list_directory", response)

        payload = response.json()
        if not isinstance(payload, list):
            raise self._unexpected("list_directory", response)
        self._record("list_directory", "ok")
        return [
            DirectoryEntry(
                name=entry["name"],
                path=entry["path"],
                sha=entry["sha"],
                type=entry.get("type", "file"),
                url=entry.get("download_url") or entry.get("url"),
            )
            for entry in payload
        ]

    # Workflows ---------------------------------------------------------
    async def dispatch_workflow(self, workflow_id: str, inputs: Dict[str, str]) -> None:
        """Fire-and-forget trigger. Acceptance does not mean the workflow ran."""
        bad = [key for key, value in inputs.items() if not isinstance(value, str)]
        if bad:
            raise DispatchError(f"Workflow inputs must be strings: {', '.join(sorted(bad))}")

        url = f"/repos/{self.owner}/{self.repo}/actions/workflows/{workflow_id}/dispatches"
        try:
            response = await self._request("dispatch", "POST", url, json={"ref": self.branch, "inputs": inputs})
        except RemoteError as exc:
            raise DispatchError(exc.message) from exc

        if response.status_code not in (200, 201, 204):
            self._record("dispatch", "error")
            raise DispatchError(
                f"Failed to trigger workflow {workflow_id}: {response.status_code}",
                details={"status": response.status_code, "body": response.text[:500]},
            )
        self._record("dispatch", "ok")
        logger.info("github.dispatched", extra={"path": workflow_id})
