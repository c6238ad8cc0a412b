"""Sync client for Roster Sync.

This module provides the client side of the roster sync protocol, allowing
this device to:
- Pull the server's roster and replace the local cache with it
- Push the local cache to the server's merge endpoint and replace the local
  cache with the merged roster the server returns
- Run the pull on a timer and push whenever the cache is edited, whether
  through this process or by another program writing the cache file

The client never merges locally. After every successful pull or push the
server's roster is the local roster. Pull and push are not serialized: when
both are in flight, whichever response arrives last is what the cache holds.

Network problems never raise to the caller; every action returns a SyncResult.
"""

from __future__ import annotations

import json
import logging
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .config import Config
from .local_cache import LocalCache
from .models import CachedRoster
from .scheduler import PeriodicTask
from .timestamp_utils import current_timestamp
from .validation import validate_timeout

logger = logging.getLogger(__name__)

__all__ = ["SyncClient", "SyncResult", "StatusIndicator"]

APPLICANTS_PATH = "/api/applicants"
SYNC_PATH = "/api/applicants/sync"
STATUS_PATH = "/api/sync/status"
REGISTER_PATH = "/api/auth/register"

STATUS_OK = "✓"
STATUS_FAILED = "✗"
STATUS_COLORS = {STATUS_OK: "#27ae60", STATUS_FAILED: "#e74c3c"}


@dataclass
class SyncResult:
    """Result of a pull or push."""

    success: bool
    action: str = ""
    applicants: int = 0  # Applicants in the cache after the action
    groups: int = 0
    skipped: bool = False  # True when sync is disabled
    errors: List[str] = field(default_factory=list)


class StatusIndicator:
    """Short-lived success/failure signal, cleared after a fixed interval.

    Attributes:
        text: Current indicator text ("" when clear)
        color: Color associated with the current text
        clear_after: Seconds before the indicator resets
    """

    def __init__(
        self,
        clear_after: float = 2.0,
        on_change: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.text = ""
        self.color = ""
        self.clear_after = clear_after
        self.on_change = on_change
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock = threading.Lock()

    def show(self, text: str) -> None:
        """Display text and schedule it to clear."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self.text = text
            self.color = STATUS_COLORS.get(text, "")
            # Timers only clear the status they were scheduled for
            self._timer = threading.Timer(self.clear_after, self._expire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()
        self._notify()

    def clear(self) -> None:
        with self._lock:
            self._reset()
        self._notify()

    def _expire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._reset()
        self._notify()

    def _reset(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1
        self.text = ""
        self.color = ""

    def _notify(self) -> None:
        if self.on_change is not None:
            try:
                self.on_change(self.text, self.color)
            except Exception as e:
                logger.error(f"Status indicator callback failed: {e}")


class SyncClient:
    """Client that keeps a local roster cache in step with the server.

    Handles pulling and pushing the roster, and scheduling the periodic
    pull.
    """

    def __init__(
        self,
        config: Config,
        cache: Optional[LocalCache] = None,
        indicator: Optional[StatusIndicator] = None,
    ) -> None:
        """Initialize sync client.

        Args:
            config: Config instance (API URL, key, sync flags, timeouts)
            cache: Local roster cache (default: the configured cache file)
            indicator: Status indicator (default: a fresh 2 second indicator)
        """
        self.config = config
        self.cache = cache if cache is not None else LocalCache(config.get_cache_file())
        self.indicator = indicator if indicator is not None else StatusIndicator()
        self.timeout = validate_timeout(config.get_request_timeout())
        self._task: Optional[PeriodicTask] = None
        self._watch_task: Optional[PeriodicTask] = None

    @property
    def api_url(self) -> str:
        return self.config.get_api_url()

    # ===== Actions =====

    def pull(self) -> SyncResult:
        """Fetch the server roster and replace the local cache with it.

        Unpushed local edits are discarded: the latest pull wins.
        """
        if not self.config.is_sync_enabled():
            logger.info("Sync disabled, skipping pull")
            return SyncResult(success=True, action="pull", skipped=True)

        logger.info("Pulling roster from server")
        response = self._make_request(f"{self.api_url}{APPLICANTS_PATH}")
        if not response["success"]:
            return self._failed("pull", f"Pull failed: {response['error']}")

        roster = _roster_from_payload(response["data"])
        if roster is None:
            return self._failed("pull", "Pull failed: malformed roster in response")

        self.cache.save_roster(roster)
        self._record_success()
        logger.info(f"Pull successful: {len(roster.applicants)} applicants")
        return SyncResult(
            success=True,
            action="pull",
            applicants=len(roster.applicants),
            groups=len(roster.groups),
        )

    def push(self) -> SyncResult:
        """Send the local cache to the merge endpoint.

        On success the cache is replaced with the merged roster from the
        server, which may include data pushed by other clients.
        """
        if not self.config.is_sync_enabled():
            logger.info("Sync disabled, skipping push")
            return SyncResult(success=True, action="push", skipped=True)

        local = self.cache.load_roster()
        logger.info(f"Pushing {len(local.applicants)} applicants to server")

        response = self._make_request(
            f"{self.api_url}{SYNC_PATH}",
            method="POST",
            data=local.to_payload(),
        )
        if not response["success"]:
            return self._failed("push", f"Push failed: {response['error']}")

        body = response["data"]
        merged = _roster_from_payload(body.get("data") if isinstance(body, dict) else None)
        if merged is None:
            return self._failed("push", "Push failed: malformed roster in response")

        self.cache.save_roster(merged)
        self._record_success()
        logger.info(f"Push successful: server holds {len(merged.applicants)} applicants")
        return SyncResult(
            success=True,
            action="push",
            applicants=len(merged.applicants),
            groups=len(merged.groups),
        )

    def sync_now(self) -> SyncResult:
        """Manual sync: pull, then push."""
        logger.info("Manual sync triggered")
        pulled = self.pull()
        pushed = self.push()
        return SyncResult(
            success=pulled.success and pushed.success,
            action="sync",
            applicants=pushed.applicants if pushed.success else pulled.applicants,
            groups=pushed.groups if pushed.success else pulled.groups,
            skipped=pulled.skipped and pushed.skipped,
            errors=pulled.errors + pushed.errors,
        )

    def check_status(self) -> Dict[str, Any]:
        """Ask the server for its sync status.

        Returns:
            Dict with "reachable" plus the server's status fields or "error"
        """
        response = self._make_request(f"{self.api_url}{STATUS_PATH}")
        if not response["success"]:
            return {"reachable": False, "error": response["error"]}
        result = {"reachable": True}
        if isinstance(response["data"], dict):
            result.update(response["data"])
        return result

    def register(self, email: str, password: str) -> Dict[str, Any]:
        """Register with the server and save the returned API key.

        Returns:
            Dict with success status and the server's account data or error
        """
        response = self._make_request(
            f"{self.api_url}{REGISTER_PATH}",
            method="POST",
            data={"email": email, "password": password},
        )
        if not response["success"]:
            return response

        data = response["data"] if isinstance(response["data"], dict) else {}
        api_key = data.get("apiKey")
        if not api_key:
            return {"success": False, "error": "Server did not return an API key"}

        self.config.set_api_key(api_key)
        logger.info(f"Registered as {data.get('email')}; API key saved")
        return {"success": True, "data": data}

    # ===== Scheduling =====

    def start_auto_sync(
        self,
        interval: Optional[float] = None,
        initial_delay: Optional[float] = None,
        push_on_change: bool = True,
        watch_interval: Optional[float] = None,
    ) -> PeriodicTask:
        """Start the periodic pull and, optionally, push-on-edit.

        Edits are picked up two ways: saves made in this process with
        notify=True push immediately, and the cache file is polled every
        watch_interval seconds for edits made by other programs.

        Args:
            interval: Seconds between pulls (default from config)
            initial_delay: Seconds before the first pull (default from config)
            push_on_change: Push whenever the cached roster is edited
            watch_interval: Seconds between cache file checks (default from config)

        Returns:
            The pull task, which doubles as the cancellation handle
        """
        if self._task is not None:
            raise RuntimeError("Auto-sync already running")

        task = PeriodicTask(
            self.pull,
            interval=interval if interval is not None else self.config.get_sync_interval(),
            initial_delay=(
                initial_delay if initial_delay is not None else self.config.get_initial_delay()
            ),
            name="roster-auto-sync",
        )
        if push_on_change:
            if watch_interval is None:
                watch_interval = self.config.get_cache_check_interval()
            self.cache.mark_seen()
            self.cache.add_listener(self._on_local_change)
            self._watch_task = PeriodicTask(
                self.check_local_changes,
                interval=watch_interval,
                initial_delay=watch_interval,
                name="roster-cache-watch",
            ).start()
        self._task = task.start()
        return task

    def stop_auto_sync(self) -> None:
        """Cancel the periodic pull and stop pushing on edits."""
        self.cache.remove_listener(self._on_local_change)
        if self._watch_task is not None:
            self._watch_task.cancel()
            self._watch_task = None
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def check_local_changes(self) -> bool:
        """Push if the cache file was edited outside this client.

        Returns:
            True if a change was found (and a push attempted)
        """
        if not self.cache.has_external_changes():
            return False
        logger.info("Cache file edited externally, pushing to server")
        self.push()
        return True

    def _on_local_change(self, roster: CachedRoster) -> None:
        logger.info("Local data changed, pushing to server")
        self.push()

    # ===== Internals =====

    def _failed(self, action: str, error: str) -> SyncResult:
        logger.error(error)
        self.indicator.show(STATUS_FAILED)
        return SyncResult(success=False, action=action, errors=[error])

    def _record_success(self) -> None:
        self.config.set_last_sync(current_timestamp())
        self.indicator.show(STATUS_OK)

    def _make_request(
        self,
        url: str,
        method: str = "GET",
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make an HTTP request to the sync server.

        Args:
            url: Full URL to request
            method: HTTP method
            data: JSON data to send (for POST)

        Returns:
            Dict with success status and response data or error
        """
        headers = {"Accept": "application/json"}
        api_key = self.config.get_api_key()
        if api_key:
            headers["X-API-Key"] = api_key

        try:
            body = None
            if data is not None:
                body = json.dumps(data).encode("utf-8")
                headers["Content-Type"] = "application/json"
            request = urllib.request.Request(url, data=body, method=method, headers=headers)

            response = urllib.request.urlopen(request, timeout=self.timeout)
            response_data = json.loads(response.read().decode("utf-8"))
            return {"success": True, "data": response_data}

        except urllib.error.HTTPError as e:
            try:
                error_data = json.loads(e.read().decode("utf-8"))
                error_msg = error_data.get("error", f"HTTP {e.code}: {e.reason}")
            except Exception:
                error_msg = f"HTTP {e.code}: {e.reason}"
            logger.error(f"Request to {url} failed: {error_msg}")
            return {"success": False, "error": f"Server error: {error_msg}"}

        except urllib.error.URLError as e:
            error_msg = f"Connection failed to {url}: {e.reason}"
            logger.error(error_msg)
            return {"success": False, "error": error_msg}

        except TimeoutError:
            error_msg = f"Request to {url} timed out after {self.timeout}s"
            logger.error(error_msg)
            return {"success": False, "error": error_msg}

        except Exception as e:
            error_msg = f"Request to {url} failed: {e}"
            logger.error(error_msg)
            return {"success": False, "error": error_msg}


def _roster_from_payload(payload: Any) -> Optional[CachedRoster]:
    """Extract {applicants, groups} from a server response body."""
    if not isinstance(payload, dict):
        return None
    applicants = payload.get("applicants") or []
    groups = payload.get("groups") or []
    if not isinstance(applicants, list) or not isinstance(groups, list):
        return None
    return CachedRoster(applicants=applicants, groups=groups)
